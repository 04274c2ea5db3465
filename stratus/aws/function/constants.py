DEFAULT_RUNTIME = "python3.12"
DEFAULT_MEMORY = 128
DEFAULT_TIMEOUT = 3
DEFAULT_DESCRIPTION = ""
MAX_MEMORY = 10240
MAX_TIMEOUT = 900
