"""
Static lookup tables for the diagnostic and progression engine.

Everything here is immutable reference data loaded once at import time:
- level names (100 entries in ten themed blocks) and stage bands
- strategy ranks and the strategy progression used for recommendations
- representation sets per scaffolding level
- operand pools for the task package patterns
- error severities and their weights

Components receive these tables through their constructors (defaulting to
the module-level values), so tests can inject smaller tables.
"""

from __future__ import annotations

from types import MappingProxyType

# =============================================================================
# Strategies
# =============================================================================

# Labels tallied by the diagnostic engine, in tie-break order
DIAGNOSTIC_STRATEGIES: tuple[str, ...] = (
    "counting_all",
    "counting_on",
    "decomposition",
    "doubles",
    "near_doubles",
    "make_ten",
    "automatized",
)

# Rank used as the strategy contribution to the ZPD likelihood
STRATEGY_LEVELS = MappingProxyType({
    "counting_all": 1,
    "counting_on": 2,
    "decomposition": 3,
    "doubles": 3,
    "near_doubles": 4,
    "make_ten": 4,
    "automatized": 5,
})
DEFAULT_STRATEGY_LEVEL = 3

# Recommended order in which strategies are introduced
STRATEGY_PROGRESSION: tuple[str, ...] = (
    "counting_all",
    "counting_on",
    "doubles",
    "near_doubles",
    "decomposition",
    "make_ten",
    "automatized",
)

# =============================================================================
# Representations (scaffolding)
# =============================================================================

MIN_REPRESENTATION_LEVEL = 1  # symbolic only
MAX_REPRESENTATION_LEVEL = 5  # full visual support

REPRESENTATIONS_BY_LEVEL = MappingProxyType({
    1: ("symbolic",),
    2: ("symbolic", "twenty_frame"),
    3: ("twenty_frame", "symbolic", "number_line"),
    4: ("twenty_frame", "symbolic", "number_line", "decomposition"),
    5: ("twenty_frame", "number_line", "decomposition", "symbolic", "strategy_hint"),
})

REPRESENTATION_DESCRIPTIONS = MappingProxyType({
    5: "Full support: all representations and strategy hints",
    4: "Strong support: visual aids with decomposition",
    3: "Medium support: twenty frame and number line",
    2: "Light support: symbolic with an optional frame",
    1: "Minimal support: symbolic only",
})

# (representation level, level reached) -> title
REPRESENTATION_MILESTONES: tuple[tuple[int, int, str], ...] = (
    (4, 15, "Visual Independence I"),
    (3, 40, "Visual Independence II"),
    (2, 70, "Visual Independence III"),
    (1, 90, "Math Master"),
)

# Upper level bound -> recommended representation level
RECOMMENDED_REPRESENTATION_BANDS: tuple[tuple[int, int], ...] = (
    (10, 5),
    (30, 4),
    (60, 3),
    (85, 2),
)

# =============================================================================
# Levels & Stages
# =============================================================================

LEVEL_THEMES = MappingProxyType({
    1: "Underwater World",
    2: "Lakeshore & Beach",
    3: "Aerial Acrobats",
    4: "Safari Adventure",
    5: "Jungle Expedition",
    6: "Insect World",
    7: "Polar Region",
    8: "Australia & Exotics",
    9: "Mountains & Highlands",
    10: "Legendary Animals",
})

LEVEL_NAMES = MappingProxyType({
    # 1-10: Underwater World
    1: "First Bubbles",
    2: "Little Fishes",
    3: "Discovering Crabs",
    4: "Octopus Friends",
    5: "Squid Adventure",
    6: "Seashell Treasures",
    7: "Shrimp Parade",
    8: "Pufferfish Fun",
    9: "Shark Encounter",
    10: "Whale Master",
    # 11-20: Lakeshore & Beach
    11: "Seal Games",
    12: "Otter Slide",
    13: "Penguin Waddle",
    14: "Flamingo Dance",
    15: "Duck Family",
    16: "Swan Elegance",
    17: "Eagle Eye",
    18: "Owl Wisdom",
    19: "Parrot Chatter",
    20: "Peacock Pride",
    # 21-30: Aerial Acrobats
    21: "Bird Flight",
    22: "Pigeon Post",
    23: "Turkey Trot",
    24: "Rooster Crow",
    25: "Chick Hatching",
    26: "Bat Night",
    27: "Raptor Hunt",
    28: "Migration Journey",
    29: "Tropical Birds",
    30: "Flight Master",
    # 31-40: Safari Adventure
    31: "Lion Roar",
    32: "Elephant Herd",
    33: "Giraffe Necks",
    34: "Zebra Stripes",
    35: "Rhino Power",
    36: "Hippo Bath",
    37: "Cheetah Sprint",
    38: "Tiger Prowl",
    39: "Gorilla Strength",
    40: "Buffalo Trek",
    # 41-50: Jungle Expedition
    41: "Monkey Climb",
    42: "Orangutan Swing",
    43: "Chimpanzee Play",
    44: "Sloth Rest",
    45: "Chameleon Camouflage",
    46: "Snake Trail",
    47: "Crocodile Lurk",
    48: "Jungle Choir",
    49: "Butterfly Dance",
    50: "Jungle King",
    # 51-60: Insect World
    51: "Caterpillar Crawl",
    52: "Cocoon Change",
    53: "Bee Buzz",
    54: "Beetle Scuttle",
    55: "Cricket Chirp",
    56: "Spider Web",
    57: "Dragonfly Flight",
    58: "Ant Highway",
    59: "Scorpion Pincers",
    60: "Insect Expert",
    # 61-70: Polar Region
    61: "Polar Bear Paws",
    62: "Seal Glide",
    63: "Penguin Colony",
    64: "Reindeer Race",
    65: "Arctic Fox Trick",
    66: "Wolf Pack",
    67: "Snowy Owl",
    68: "Whale Song",
    69: "Ice Sharks",
    70: "Polar Champion",
    # 71-80: Australia & Exotics
    71: "Kangaroo Jump",
    72: "Koala Hug",
    73: "Wombat Burrow",
    74: "Wallaby Hop",
    75: "Gecko Climb",
    76: "Saltwater Crocodile",
    77: "Outback Hero",
    78: "Tarantula Courage",
    79: "Thorny Devil Tricks",
    80: "Down Under Star",
    # 81-90: Mountains & Highlands
    81: "Golden Eagle Flight",
    82: "Ibex Climb",
    83: "Deer Antlers",
    84: "Brown Bear Power",
    85: "Raccoon Curiosity",
    86: "Beaver Dam",
    87: "Badger Sett",
    88: "Summit Stormer",
    89: "Mountain Master",
    90: "Highland King",
    # 91-100: Legendary Animals
    91: "Unicorn Magic",
    92: "Dragon Flight",
    93: "Phoenix Rising",
    94: "Sphinx Riddle",
    95: "Wyrm Wisdom",
    96: "Dino Discovery",
    97: "Prehistoric Giant",
    98: "Zoo Director",
    99: "Grandmaster",
    100: "Math Legend",
})

# Upper level bound -> stage number (20 stages)
STAGE_BOUNDS: tuple[tuple[int, int], ...] = (
    (7, 1),
    (13, 2),
    (20, 3),
    (25, 4),
    (30, 5),
    (35, 6),
    (40, 7),
    (48, 8),
    (55, 9),
    (62, 10),
    (68, 11),
    (75, 12),
    (81, 13),
    (87, 14),
    (92, 15),
    (93, 16),
    (95, 17),
    (97, 18),
    (99, 19),
)
FINAL_STAGE = 20

# Upper level bound -> number range practiced at that level
NUMBER_RANGE_BANDS: tuple[tuple[int, int], ...] = (
    (20, 10),
    (40, 20),
)
DEFAULT_NUMBER_RANGE = 100

# =============================================================================
# Competency range bands
# =============================================================================

# Bands above 20 that only distinguish complement vs. plain tasks
SIMPLE_RANGE_BANDS: tuple[int, ...] = (30, 40, 50, 80, 200, 500)
# Bands above 20 that also distinguish decade transitions
TRANSITION_RANGE_BANDS: tuple[int, ...] = (100, 1000)

# =============================================================================
# Errors
# =============================================================================

ERROR_SEVERITIES = MappingProxyType({
    "counting_error_minus_1": "minor",
    "counting_error_plus_1": "minor",
    "counting_error_minus_2": "moderate",
    "counting_error_plus_2": "moderate",
    "operation_confusion": "severe",
    "input_error": "minor",
    "place_value": "severe",
    "off_by_ten_minus": "moderate",
    "off_by_ten_plus": "moderate",
    "doubling_error": "moderate",
    "digit_reversal": "moderate",
    "decade_boundary_confusion": "severe",
    "subtraction_reversal_at_ten": "severe",
    "other": "moderate",
})

ERROR_LABELS = MappingProxyType({
    "counting_error_minus_1": "Counted one too few",
    "counting_error_plus_1": "Counted one too many",
    "counting_error_minus_2": "Counted two too few",
    "counting_error_plus_2": "Counted two too many",
    "operation_confusion": "Used the wrong operation",
    "input_error": "Typing mistake",
    "place_value": "Place value confusion",
    "off_by_ten_minus": "Ten too few",
    "off_by_ten_plus": "Ten too many",
    "doubling_error": "Doubled instead of adding",
    "digit_reversal": "Digits swapped",
    "decade_boundary_confusion": "Stopped at the decade boundary",
    "subtraction_reversal_at_ten": "Subtracted the wrong way round at ten",
    "other": "Other error",
})

SEVERITY_WEIGHTS = MappingProxyType({
    "severe": 1.0,
    "moderate": 0.6,
    "minor": 0.3,
})

# =============================================================================
# Task package operand pools
# =============================================================================
# Each pool has three tiers: difficulty <= 2, <= 4, and 5. Pools are keyed by
# the largest range they fit: 10, 20 and 100.

SUM_CONSTANCY_TARGETS = MappingProxyType({
    10: (6, 8, 10),
    20: (10, 15, 20),
    100: (50, 75, 100),
})

NEIGHBOR_SETTINGS = MappingProxyType({
    # (addend, start) per tier
    10: ((2, 1), (3, 2), (4, 1)),
    20: ((3, 2), (5, 3), (7, 5)),
    100: ((5, 20), (12, 35), (18, 50)),
})

INVERSE_PAIRS = MappingProxyType({
    10: (
        ((3, 2), (4, 1), (5, 2)),
        ((4, 3), (6, 2), (5, 4)),
        ((7, 3), (6, 4), (8, 2)),
    ),
    20: (
        ((5, 3), (7, 2), (6, 4)),
        ((8, 5), (9, 4), (7, 6)),
        ((12, 8), (13, 6), (11, 9)),
    ),
    100: (
        ((25, 15), (32, 18), (28, 22)),
        ((47, 28), (54, 29), (61, 34)),
        ((68, 27), (75, 18), (82, 13)),
    ),
})

ANALOGY_BASES = MappingProxyType({
    10: (
        ((1, 2), (2, 1), (1, 3)),
        ((2, 2), (3, 1), (2, 3)),
        ((3, 2), (4, 1), (2, 4)),
    ),
    20: (
        ((2, 3), (3, 4), (4, 5)),
        ((5, 4), (6, 3), (7, 2)),
        ((8, 5), (9, 4), (7, 6)),
    ),
    100: (
        ((4, 8), (7, 6), (9, 5)),
        ((18, 14), (23, 17), (16, 19)),
        ((37, 28), (45, 34), (52, 29)),
    ),
})
ANALOGY_STEPS = MappingProxyType({10: 5, 20: 10, 100: 30})

# strategy -> operand pairs that provoke its typical errors
ERROR_PATTERN_PAIRS = MappingProxyType({
    10: MappingProxyType({
        "counting": ((6, 3), (5, 4), (7, 2), (4, 3)),
        "make_ten": ((6, 4), (7, 3), (8, 2), (9, 1)),
    }),
    20: MappingProxyType({
        "counting": ((8, 3), (7, 4), (9, 2), (6, 5)),
        "make_ten": ((8, 5), (9, 4), (7, 6), (8, 7)),
    }),
    100: MappingProxyType({
        "counting": ((38, 15), (47, 24), (56, 19), (62, 28)),
        "make_ten": ((48, 7), (59, 8), (67, 16), (78, 14)),
    }),
})

TURNING_POINTS = MappingProxyType({
    10: (5, 10),
    20: (5, 10, 15, 20),
    100: (25, 50, 75, 100),
})

# strategy -> package pattern for adaptive sequencing
STRATEGY_PATTERNS = MappingProxyType({
    "decomposition": "sum_constancy",
    "counting_on": "neighbor_tasks",
    "make_ten": "analogy_package",
})
DEFAULT_SEQUENCE_PATTERN = "neighbor_tasks"
