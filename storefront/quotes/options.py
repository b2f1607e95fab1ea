"""
Catalogue d'options des formulaires jantes (Belak, JTX).
Modifier ces listes suffit pour ajouter une finition ou un entraxe.
"""

# Belak
BELAK_SERIES = ("Series 2", "Series 3")
BELAK_DIAMETERS = (13, 15, 17, 18)
BELAK_WIDTHS_BY_DIAMETER = {
    13: (7.5, 8, 9, 10, 11),
    15: (3.5, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15),
    17: (4.5, 6, 7.5, 8, 9, 9.5, 10, 11, 11.5),
    18: (6, 8, 9, 9.5, 10, 11, 11.5),
}
BELAK_BOLT_PATTERNS = (
    "4x100", "4x108", "4x114.3",
    "5x100", "5x112", "5x114.3", "5x120", "5x4.50", "5x4.75",
    "6x4.5",
)
BELAK_FINISHES = (
    "Two-Tone Black/Machined (standard)",
    "Raw/Bare (for custom coat)",
    "Custom Powder Coat - Stage 1 (one solid color)",
    "Custom Powder Coat - Stage 2 (two-stage/complex)",
)
BELAK_BEADLOCK = ("None", "Single Beadlock", "Double Beadlock")
BELAK_HARDWARE = ("Standard ARP", "Upgraded ARP (color)", "Black hardware", "Polished hardware")
BELAK_CENTER_CAP = ("Standard", "Black", "Polished", "Color-matched")
BELAK_STYLES = (
    "Mono Series 2 - Twisted",
    "Standard",
    "Series 2",
    "Series 2 - Directional",
    "Series 3",
)

# JTX
JTX_STYLES_BY_SERIES = {
    "Single Series": ("CENTERFIRE", "CAPO"),
    "Phantom Series": ("JUDGE", "INTREPID", "PRODIGY"),
    "Concave Series": (
        "CENTERFIRE", "CAPO", "BALLISTIC", "RECON", "CHAMBER", "GRIP", "CARBINE",
        "DOUBLE STACK", "SAVAGE", "TRIGGER", "SILENCER", "ZONE", "TEFLON", "HAMMER",
    ),
    "Rock Ring Series": (
        "CENTERFIRE", "CAPO", "BALLISTIC", "RECON", "CHAMBER", "GRIP", "SAVAGE",
        "TRIGGER", "SILENCER", "ZONE",
    ),
    "Retro Series": ("RT-101", "RT-102", "RT-103", "RT-104", "RT-105", "RT-106"),
    "2-Piece Series": ("STREET", "RETRO", "BABY BILLETS"),
    "Dually Series": ("COMBAT", "CENTERFIRE", "CAPO", "SILENCER", "FLIGHT", "CANNON"),
    "UTV Series": ("CENTERFIRE", "LOTUS", "DAO", "WICKED", "TURBO", "REAPER"),
    "Monoforged Series": ("ICON", "M-202", "M-203", "PIKE"),
    "Beadlock Series": ("BD-202",),
}
JTX_SERIES = tuple(JTX_STYLES_BY_SERIES)
JTX_DIAMETERS_BY_SERIES = {
    "Single Series": (22, 24, 26, 28, 30),
    "Phantom Series": (22, 24, 26, 28, 30),
    "Concave Series": (22, 24, 26, 28, 30),
    "Rock Ring Series": (22, 24, 26, 28, 30),
    "Retro Series": (20, 22, 24, 26, 28, 30),
    "2-Piece Series": (20, 22, 24, 26, 28, 30),
    "Dually Series": (22, 24, 26, 28, 30),
    "UTV Series": (24,),
    "Monoforged Series": (20, 21, 22, 24, 26, 28),
    "Beadlock Series": (17, 18, 20),
}
JTX_WIDTHS_BY_DIAMETER = {
    17: (9,),
    18: (9,),
    20: (8, 9, 9.5, 10, 10.5, 12, 14),
    21: (12, 12.5, 13),
    22: (8, 9, 9.5, 10, 10.5, 12, 14),
    24: (8, 9, 9.5, 10, 12, 14, 16),
    26: (8, 9, 10, 12, 14, 16),
    28: (8, 9, 10, 12, 14, 16),
    30: (8, 9, 10, 12, 14),
}
JTX_BOLT_PATTERNS = ("5x114.3", "5x127", "5x120", "6x135", "6x139.7", "8x170", "8x180")
# Beadlock: plage d'offset (mm) par taille
JTX_BEADLOCK_OFFSETS = {
    "17x9": (-38, 13),
    "18x9": (-13, 13),
    "20x9": (-13, 13),
}
JTX_OFFSET_RANGE = (-76, 44)
JTX_FINISHES = ("Polished", "Brushed", "Gloss Black", "Satin Black", "Two-Tone", "Custom Powder")
