"""
MatchPulse - Constants

Enumerations and fixed name pools shared by every telemetry generator.
"""

from enum import StrEnum


class Game(StrEnum):
    """Supported game titles."""

    VALORANT = "Valorant"
    CS2 = "CS2"


class PhaseType(StrEnum):
    """
    Performance state of a contiguous match segment.

    HOT is a streak, SLUMP a cold stretch, RECOVERY the climb back out.
    """

    HOT = "hot"
    NORMAL = "normal"
    SLUMP = "slump"
    RECOVERY = "recovery"


class EventAction(StrEnum):
    """In-game event categories."""

    KILL = "kill"
    DEATH = "death"
    ASSIST = "assist"
    BOMB_PLANT = "bomb_plant"
    BOMB_DEFUSE = "bomb_defuse"
    ROUND_START = "round_start"
    ROUND_END = "round_end"
    ABILITY_USE = "ability_use"
    DAMAGE_DEALT = "damage_dealt"


# Actions that involve a second player and a weapon
DUEL_ACTIONS = frozenset({EventAction.KILL, EventAction.DEATH, EventAction.ASSIST})


class Sentiment(StrEnum):
    """Voice turn sentiment categories."""

    POSITIVE = "positive"
    EXCITED = "excited"
    NEUTRAL = "neutral"
    CALM = "calm"
    URGENT = "urgent"
    NEGATIVE = "negative"
    FRUSTRATED = "frustrated"


# Signed score range per sentiment; anything not listed is near-neutral
SENTIMENT_SCORE_RANGES: dict[Sentiment, tuple[float, float]] = {
    Sentiment.POSITIVE: (0.5, 1.0),
    Sentiment.EXCITED: (0.5, 1.0),
    Sentiment.NEGATIVE: (-1.0, -0.5),
    Sentiment.FRUSTRATED: (-1.0, -0.5),
}
NEUTRAL_SCORE_RANGE = (-0.2, 0.2)


class Pressure(StrEnum):
    """Situational pressure attached to a TTD sample, ordered low to high."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


PRESSURE_LEVELS: tuple[Pressure, ...] = (
    Pressure.LOW,
    Pressure.NORMAL,
    Pressure.HIGH,
    Pressure.CRITICAL,
)


class Situation(StrEnum):
    """Decision context of a TTD sample."""

    COMBAT = "combat"
    STRATEGIC = "strategic"
    DEFENSIVE = "defensive"
    OFFENSIVE = "offensive"
    CLUTCH = "clutch"


class ComboContext(StrEnum):
    """Side on which a player combo was executed."""

    OFFENSE = "offense"
    DEFENSE = "defense"


class IntervalMethod(StrEnum):
    """Confidence interval strategy for combo win rates."""

    FIXED = "fixed"  # symmetric +/- delta, unclamped
    WILSON = "wilson"  # Wilson score interval


class UserRole(StrEnum):
    USER = "user"
    ADMIN = "admin"


# =============================================================================
# Name pools
# =============================================================================

MAPS: dict[Game, tuple[str, ...]] = {
    Game.VALORANT: ("Bind", "Haven", "Split", "Ascent", "Icebox", "Breeze", "Fracture", "Pearl"),
    Game.CS2: ("Dust2", "Mirage", "Inferno", "Cache", "Overpass", "Vertigo", "Ancient", "Nuke"),
}

TEAM_NAMES: tuple[str, ...] = (
    "Team Alpha",
    "Team Beta",
    "Team Gamma",
    "Team Delta",
    "Team Echo",
    "Team Zeta",
    "Team Eta",
    "Team Theta",
    "Team Iota",
    "Team Kappa",
    "Team Lambda",
    "Team Mu",
)

PLAYER_NAMES: tuple[str, ...] = (
    "Phoenix",
    "Jett",
    "Reyna",
    "Sage",
    "Sova",
    "Viper",
    "Omen",
    "Brimstone",
    "Cypher",
    "Killjoy",
    "Chamber",
    "Neon",
    "Raze",
    "Skye",
    "Astra",
    "Yoru",
)

WEAPONS: tuple[str, ...] = (
    "Vandal",
    "Phantom",
    "Operator",
    "Sheriff",
    "Ghost",
    "Classic",
    "Judge",
    "Odin",
    "Guardian",
    "Marshal",
    "Spectre",
    "Bulldog",
)

ABILITIES: tuple[str, ...] = (
    "Hot Hands",
    "Blaze",
    "Curveball",
    "Healing Orb",
    "Slow Orb",
    "Barrier Orb",
    "Shock Bolt",
    "Recon Bolt",
    "Owl Drone",
    "Toxic Screen",
    "Snake Bite",
    "Poison Cloud",
)

VOICE_CALLOUTS: tuple[str, ...] = (
    "Tactical call",
    "Status report",
    "Enemy position",
    "Requesting support",
    "Ability status",
    "Economy check",
)

# Default semantic owner for synthetic data
DEFAULT_OWNER_KEY = "dev_admin"

# TTD distribution buckets (label, inclusive min, exclusive max) in milliseconds
TTD_BUCKETS: tuple[tuple[str, float, float], ...] = (
    ("<250", 0, 250),
    ("250-500", 250, 500),
    ("500-750", 500, 750),
    ("750-1000", 750, 1000),
    ("1000-1500", 1000, 1500),
    (">1500", 1500, float("inf")),
)
