import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = os.getenv("REDIS_PORT", 6379)
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

# Header the push bridge sets on every request: where to push replies for this session
PUSH_HEADER = os.getenv("PUSH_HEADER", "x-ws-proxy-send")
PUSH_TIMEOUT = float(os.getenv("PUSH_TIMEOUT", 10.0))

PING_INTERVAL = float(os.getenv("PING_INTERVAL", 30.0))

ICE_SERVERS = os.getenv(
    "ICE_SERVERS", "stun:stun.services.mozilla.com,stun:stun.l.google.com:19302"
).split(",")

BRIDGE_HOST = os.getenv("BRIDGE_HOST", None)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Where the directory listens; the push bridge forwards client frames here
DIRECTORY_HOST = os.getenv("HOST", "0.0.0.0")
DIRECTORY_PORT = int(os.getenv("PORT", 8000))
