"""Fixed limits and defaults for the padseq engine."""

GROUP_COUNT = 4
PADS_PER_GROUP = 16
MAX_PATTERNS = 99

DEFAULT_STEPS_PER_PATTERN = 16
DEFAULT_STEPS_PER_BEAT = 4

MIN_BPM = 60
MAX_BPM = 300
DEFAULT_BPM = 120
TEMPO_STEP = 5

VOLUME_STEP = 0.05
DEFAULT_MASTER_GAIN = 0.7
DEFAULT_GROUP_GAIN = 0.8

# How long a triggered pad stays highlighted in the display.
FLASH_SECONDS = 0.15

MIDI_MAX_VELOCITY = 127
DEFAULT_BASE_NOTE = 36
