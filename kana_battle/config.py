from dataclasses import dataclass, field
from datetime import timedelta

# Prompt phases
ATTACK = "attack"
DEFENSE = "defense"

# -----------------------------
# Combo tiers
# -----------------------------
@dataclass(frozen=True)
class ComboTier:
    threshold: int  # minimum combo count for this tier
    multiplier: float  # damage multiplier
    think_time: float  # seconds before an idle combo expires


# Sorted by descending threshold, the last tier must start at 0
COMBO_TIERS = (
    ComboTier(threshold=5, multiplier=2.0, think_time=3.0),
    ComboTier(threshold=3, multiplier=1.5, think_time=5.0),
    ComboTier(threshold=0, multiplier=1.0, think_time=7.0),
)


# -----------------------------
# Game configuration
# -----------------------------
@dataclass(frozen=True)
class GameConfig:
    # Player
    max_lives: int = 3

    # Enemy spawn ranges (inclusive)
    enemy_health_range: tuple = (5, 10)
    enemy_attack_threshold_range: tuple = (2, 4)
    respawn_delay: float = 2.0
    heal_on_miss: int = 1
    base_damage: int = 1
    combo_tiers: tuple = COMBO_TIERS

    # Prompt generation
    word_threshold: int = 100  # composable words needed before word mode kicks in
    word_length_bonus: int = 2  # max word length = enemies defeated + this
    defense_pool_size: int = 10
    defense_max_length: int = 3
    individual_prompt_length: int = 3

    # Selection weights
    new_card_weight: float = 3.0
    retrievability_offset: float = 0.1
    accuracy_offset: float = 0.1
    neutral_retrievability_weight: float = 1.0
    wilson_z: float = 1.96

    # Grading thresholds
    grade_min_history: int = 3
    easy_accuracy: float = 0.8
    hard_accuracy: float = 0.5

    # Scheduler (fsrs)
    desired_retention: float = 0.9
    learning_steps: tuple = field(
        default=(
            timedelta(minutes=1),
            timedelta(minutes=5),
            timedelta(minutes=15),
            timedelta(hours=1),
            timedelta(hours=4),
        )
    )
    relearning_steps: tuple = (timedelta(minutes=5), timedelta(minutes=15))
    maximum_interval: int = 90  # days

    def __post_init__(self):
        low, high = self.enemy_health_range
        if not 1 <= low <= high:
            raise ValueError(f"Invalid enemy health range: {self.enemy_health_range}")
        low, high = self.enemy_attack_threshold_range
        if not 1 <= low <= high:
            raise ValueError(f"Invalid attack threshold range: {self.enemy_attack_threshold_range}")
        if not self.combo_tiers or self.combo_tiers[-1].threshold != 0:
            raise ValueError("Combo tiers must end with a tier starting at 0")
        thresholds = [tier.threshold for tier in self.combo_tiers]
        if thresholds != sorted(thresholds, reverse=True):
            raise ValueError("Combo tiers must be sorted by descending threshold")
        multipliers = [tier.multiplier for tier in self.combo_tiers]
        if multipliers != sorted(multipliers, reverse=True):
            raise ValueError("Combo multipliers must not decrease as combo grows")

    def combo_tier(self, combo):
        """Return the first tier whose threshold the combo reaches."""
        for tier in self.combo_tiers:
            if combo >= tier.threshold:
                return tier
        return self.combo_tiers[-1]


DEFAULT_CONFIG = GameConfig()
