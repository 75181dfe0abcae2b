"""
Runtime configuration read from environment variables.

Values are read once at import time. Nothing here is validated beyond
presence; a bad OLLAMA_HOST simply makes the startup probe fail and the
service runs with template summaries.
"""

import os

# HTTP listener
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8080"))

# Remote text-generation service (Ollama)
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama2")

# Seconds
PROBE_TIMEOUT = 5.0
GENERATE_TIMEOUT = 60.0

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
