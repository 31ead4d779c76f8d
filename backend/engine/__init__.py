"""
Five Elements Market rules engine
Core engine without web framework, database, or UI
"""

DICE_SIDES = 6

ELEMENTS = ("wood", "water", "fire", "metal", "earth")

# Session setup
STARTING_GOLD = 5
STARTING_DICE = 1
STARTING_BUILDINGS = (
    "water_basic_fishing_weir",
    "wood_basic_mulberry_garden",
    "metal_basic_smithy",
    "earth_basic_quarry",
)
# Building quantities in the catalog are written for this many players
BASE_PLAYER_COUNT = 4
MIN_PLAYERS = 2
MAX_PLAYERS = 6

# Purchases
TREASURY_TAX_PERCENT = 20
DEFAULT_UPGRADE_TOKENS = 3

# Settlement
THRESHOLD_BONUS_TOTAL = 7
FIRE_SHIELD_DIVISOR = 2

# Victory
WIN_GOLD_THRESHOLD = 99

WEATHER_CALM = "calm"
WEATHER_TURBULENT = "turbulent"
WEATHER_MODES = (WEATHER_CALM, WEATHER_TURBULENT)

TREASURY = "treasury"
BANK = "bank"
