"""Fixed capture format constants."""

# Link type written into every capture file header (DLT_EN10MB).
LINKTYPE_ETHERNET = 1

# Snap length for live capture and the header of written files.
MAX_PACKET_SIZE = 65535

DEFAULT_TIMEOUT_MS = 1000

# Path shorthand for the process's standard input/output.
STDIO_PATH = "-"

NANOSECONDS_PER_SECOND = 1_000_000_000

# Largest captured length a pcap record header can express.
MAX_RECORD_LENGTH = 0xFFFFFFFF
