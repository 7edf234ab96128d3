"""
Configuration constants for transfer service.
"""

# Chunk size for streaming reads
DEFAULT_CHUNK_SIZE = 80 * 1024  # 80KB

# Relay pipe capacity for remote-to-remote copies
DEFAULT_BUFFER_SIZE = 512 * 1024 * 1024  # 512MB

# Deadline for blob transfer and create requests (0 disables)
DEFAULT_TRANSFER_TIMEOUT = 3600.0  # 1 hour

# Deadline for existence checks
DEFAULT_PROBE_TIMEOUT = 30.0

# Minimum seconds between progress callbacks
DEFAULT_PROGRESS_INTERVAL = 0.1

# Registry mirrors, in the order they are tried
DEFAULT_REGISTRY_HOSTS = ("registry.ollama.ai", "registry.ollama.com")
