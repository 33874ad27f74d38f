import logging
import math
import random
from dataclasses import dataclass, replace

from .config import ATTACK, DEFAULT_CONFIG, DEFENSE
from .timers import TimerSlot

logger = logging.getLogger(__name__)

# Event kinds
DAMAGE = "damage"
HEAL = "heal"
BLOCK = "block"
LIFE_LOST = "life_lost"
ENEMY_DEFEATED = "enemy_defeated"
GAME_OVER = "game_over"


# -----------------------------
# Combat models
# -----------------------------
@dataclass(frozen=True)
class EnemyStats:
    max_health: int
    attack_threshold: int  # attack prompts before the enemy strikes back


@dataclass
class CombatState:
    enemy: EnemyStats
    health: int
    lives: int
    attempt_counter: int = 0
    combo: int = 0
    phase: str = ATTACK
    enemy_defeated_pending: bool = False
    game_over: bool = False


@dataclass(frozen=True)
class CombatEvent:
    kind: str
    amount: int = 0


def spawn_enemy(rng=random, config=DEFAULT_CONFIG):
    return EnemyStats(
        max_health=rng.randint(*config.enemy_health_range),
        attack_threshold=rng.randint(*config.enemy_attack_threshold_range),
    )


def combo_multiplier(combo, config=DEFAULT_CONFIG):
    return config.combo_tier(combo).multiplier


def phase_for(attempt_counter, enemy):
    """Every `attack_threshold`-th prompt is a defense prompt."""
    if attempt_counter > 0 and attempt_counter % enemy.attack_threshold == 0:
        return DEFENSE
    return ATTACK


# -----------------------------
# Engine
# -----------------------------
class CombatEngine:
    """
    Turn-based fight against a stream of enemies.

    Answers resolve synchronously in `on_answer`. The only delayed work is
    the respawn after a defeat and the combo expiry countdown, both held in
    generation-guarded timer slots.
    """

    def __init__(self, timers, rng=None, config=DEFAULT_CONFIG, on_respawn=None, on_combo_expired=None, enemy=None):
        self.config = config
        self.rng = rng or random.Random()
        self.on_respawn = on_respawn
        self.on_combo_expired = on_combo_expired
        self.respawn_timer = TimerSlot(timers, "respawn")
        self.combo_timer = TimerSlot(timers, "combo expiry")

        enemy = enemy or spawn_enemy(self.rng, config)
        self.state = CombatState(enemy=enemy, health=enemy.max_health, lives=config.max_lives)

    @property
    def accepting(self):
        """False while the defeat transition runs or after game over."""
        return not (self.state.enemy_defeated_pending or self.state.game_over)

    def snapshot(self):
        return replace(self.state)

    def on_answer(self, all_correct):
        """Apply one answer and return what happened."""
        if not self.accepting:
            return []

        state = self.state
        events = []
        if state.phase == ATTACK:
            if all_correct:
                state.combo += 1
                damage = math.ceil(self.config.base_damage * combo_multiplier(state.combo, self.config))
                state.health = max(0, state.health - damage)
                events.append(CombatEvent(DAMAGE, damage))
                if state.health <= 0:
                    self._enemy_defeated(events)
            else:
                state.combo = 0
                healed = min(self.config.heal_on_miss, state.enemy.max_health - state.health)
                state.health += healed
                events.append(CombatEvent(HEAL, healed))
        else:
            if all_correct:
                state.combo += 1
                events.append(CombatEvent(BLOCK))
            else:
                state.combo = 0
                state.lives = max(0, state.lives - 1)
                events.append(CombatEvent(LIFE_LOST, 1))
                if state.lives == 0:
                    state.game_over = True
                    events.append(CombatEvent(GAME_OVER))
                    self.close()
                    logger.info("Game over")

        state.attempt_counter += 1
        state.phase = phase_for(state.attempt_counter, state.enemy)
        self.restart_combo_timer()
        return events

    # -------------------------
    # Enemy lifecycle
    # -------------------------
    def _enemy_defeated(self, events):
        self.state.enemy_defeated_pending = True
        events.append(CombatEvent(ENEMY_DEFEATED))
        self.combo_timer.cancel()
        # Replaces any respawn still pending
        self.respawn_timer.schedule(self.config.respawn_delay, self._respawn)
        logger.debug("Enemy defeated, respawning in %.1fs", self.config.respawn_delay)

    def _respawn(self):
        if self.state.game_over:
            return
        enemy = spawn_enemy(self.rng, self.config)
        self.state.enemy = enemy
        self.state.health = enemy.max_health
        self.state.attempt_counter = 0
        self.state.phase = ATTACK
        self.state.enemy_defeated_pending = False
        logger.debug("New enemy: %s", enemy)
        if self.on_respawn is not None:
            self.on_respawn(enemy)

    # -------------------------
    # Combo expiry
    # -------------------------
    def think_time(self):
        return self.config.combo_tier(self.state.combo).think_time

    def combo_time_left(self):
        """(seconds left, full window) of the combo countdown, or None when it is not running."""
        remaining = self.combo_timer.remaining()
        if remaining is None:
            return None
        return remaining, self.combo_timer.delay

    def restart_combo_timer(self):
        """Restart the countdown; call on every new prompt and answer."""
        if not self.accepting:
            self.combo_timer.cancel()
            return
        self.combo_timer.schedule(self.think_time(), self._combo_expired)

    def _combo_expired(self):
        if not self.accepting or self.state.combo == 0:
            return
        logger.debug("Combo of %d expired", self.state.combo)
        self.state.combo = 0
        if self.on_combo_expired is not None:
            self.on_combo_expired()

    def close(self):
        self.respawn_timer.cancel()
        self.combo_timer.cancel()
