"""Kana Battle: learn hiragana and katakana by fighting enemies."""

__version__ = "0.1.0"
