"""Wire-level constants for the ELM327 command/response protocol."""

# Dispatcher defaults. Timeouts are per attempt, in seconds.
DEFAULT_RETRIES = 2
DEFAULT_COMMAND_TIMEOUT = 3.0

# Adapter health probe
HEALTH_COMMAND = "AT"
HEALTH_RETRIES = 1
HEALTH_TIMEOUT = 2.0

# Battery voltage
VOLTAGE_COMMAND = "AT RV"
VOLTAGE_RETRIES = 3
VOLTAGE_TIMEOUT = 8.0
VOLTAGE_SETTLE_DELAY = 0.5
VOLTAGE_MIN = 8.0
VOLTAGE_MAX = 16.0

# Diagnostic trouble codes
DTC_READ_COMMAND = "03"
DTC_CLEAR_COMMAND = "04"
DTC_RETRIES = 3
DTC_TIMEOUT = 5.0
DTC_RESPONSE_MODE = "43"
DTC_CLEAR_RESPONSE_MODE = "44"
DTC_EMPTY_MARKER = "43 00"

# Mode 01 current data
CURRENT_DATA_MODE = "01"
CURRENT_DATA_RESPONSE_MODE = "41"

# Adapter reset and init sequence
RESET_COMMAND = "ATZ"
RESET_DELAY = 0.5
INIT_COMMANDS = (
    "ATL0",  # linefeeds off
    "ATH0",  # headers off
    "ATE0",  # echo off
    "ATS0",  # spaces off
    "ATI",  # version info
    "AT SP 0",  # automatic protocol
)
INIT_COMMAND_DELAY = 0.1

# Serial link
PROMPT = ">"
DEFAULT_BAUDRATE = 38400
WAKE_IDLE_THRESHOLD = 5.0
WAKE_DELAY = 0.5

NO_DATA = "NO DATA"
ERROR_TOKEN = "ERROR"
UNKNOWN_COMMAND = "?"
ERROR_TOKENS = (
    NO_DATA,
    ERROR_TOKEN,
    UNKNOWN_COMMAND,
    "UNABLE TO CONNECT",
    "STOPPED",
)
