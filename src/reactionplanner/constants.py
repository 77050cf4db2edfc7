"""Shared constants for the reaction planner."""

SCHEMA_VERSION = 2
STORAGE_KEY = "reactionPlanData"

# Display precision
SM_MMOL_DECIMALS = 4
REAGENT_MMOL_DECIMALS = 3
MASS_DECIMALS = 2
VOLUME_DECIMALS = 3
YIELD_DECIMALS = 1

EXCELLENT_YIELD = 80.0
GOOD_YIELD = 50.0

AMBIENT_TEMPERATURE_C = 25.0  # °C, used to infer the physical state

DEFAULT_EQ = "1.0"
DEFAULT_PURITY = "100"
DEFAULT_DEBOUNCE_MS = 300

LIMITING_SM = "sm"
