import json

import pytest

from kana_battle.kana import (
    HIRAGANA,
    KATAKANA,
    CatalogError,
    KanaCatalog,
    build_characters,
    load_word_bank,
    romaji_to_kana,
)


def test_catalog_covers_both_scripts(catalog) -> None:
    scripts = {c.script for c in catalog}
    assert scripts == {HIRAGANA, KATAKANA}
    assert len(catalog) == 2 * len([c for c in catalog if c.script == HIRAGANA])


def test_katakana_is_derived_from_hiragana(catalog) -> None:
    assert catalog.get("katakana-ka").character == "カ"
    assert catalog.get("katakana-sha").character == "シャ"
    assert catalog.get("katakana-shi").romaji == catalog.get("hiragana-shi").romaji


def test_romaji_are_sorted_longest_first(catalog) -> None:
    for char in catalog:
        lengths = [len(r) for r in char.romaji]
        assert lengths == sorted(lengths, reverse=True)
    assert catalog.get("hiragana-n").romaji == ("n",)
    assert catalog.get("hiragana-n").hint == "n"


def test_catalog_rejects_duplicate_ids() -> None:
    chars = build_characters()
    with pytest.raises(CatalogError):
        KanaCatalog(chars + chars[:1])


def test_resolve_keeps_catalog_order_and_rejects_unknown(catalog) -> None:
    chars = catalog.resolve(["hiragana-ki", "hiragana-a"])
    assert [c.id for c in chars] == ["hiragana-a", "hiragana-ki"]
    with pytest.raises(KeyError):
        catalog.resolve(["hiragana-xx"])


def test_ids_for_groups(catalog) -> None:
    assert catalog.ids_for_groups(["hiragana:k"]) == {f"hiragana-{s}" for s in ("ka", "ki", "ku", "ke", "ko")}
    whole = catalog.ids_for_groups(["katakana"])
    assert all(cid.startswith("katakana-") for cid in whole)
    assert len(whole) == len(catalog) // 2
    assert "hiragana:k" in catalog.groups()
    with pytest.raises(KeyError):
        catalog.ids_for_groups(["hiragana:nope"])
    with pytest.raises(KeyError):
        catalog.ids_for_groups(["kanji"])


def test_bundled_word_bank_loads() -> None:
    bank = load_word_bank()
    assert bank[HIRAGANA]["ねこ"] == "cat"
    assert bank[KATAKANA]


def test_word_bank_errors(tmp_path) -> None:
    missing = tmp_path / "missing.json"
    with pytest.raises(CatalogError):
        load_word_bank(missing)

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError):
        load_word_bank(broken)

    wrong = tmp_path / "wrong.json"
    wrong.write_text(json.dumps({"hiragana": ["ねこ"]}), encoding="utf-8")
    with pytest.raises(CatalogError):
        load_word_bank(wrong)


def test_romaji_preview() -> None:
    assert romaji_to_kana("neko") == "ねこ"
    assert romaji_to_kana("neko", KATAKANA) == "ネコ"
