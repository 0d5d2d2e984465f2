"""Configuration for the garment recoloring engine."""

# Region names in composite order (body, then sleeves, then trims)
REGION_NAMES = ("body", "sleeves", "trims")
REQUIRED_REGIONS = ("body", "sleeves")

# Color slot paired with each region
REGION_COLOR_SLOTS = {
    "body": "primary",
    "sleeves": "secondary",
    "trims": "tertiary",
}

# Geometry guard: fraction of pixels allowed to change alpha (0.5%)
GEOMETRY_DIFF_THRESHOLD = 0.005
# Alpha difference counted as a change (0 = any byte difference)
GEOMETRY_ALPHA_TOLERANCE = 0

# Color guard: Euclidean RGB distance (roughly deltaE 12)
COLOR_DISTANCE_THRESHOLD = 50.0

# Mask first-channel value a pixel must exceed to be sampled by the color guard
MASK_SAMPLE_THRESHOLD = 200
# Mask first-channel value a pixel must exceed to count as white/editable
MASK_WHITE_THRESHOLD = 200

# Default border for create_rectangle_mask
RECTANGLE_MASK_PADDING = 50

# Dominant color detection
KMEANS_MAX_SAMPLES = 10000
KMEANS_MAX_ITERATIONS = 20
KMEANS_RANDOM_STATE = 42
# Mask first-channel value a pixel must reach to be clustered
KMEANS_MASK_THRESHOLD = 200
FALLBACK_PALETTE_HEX = "#808080"
