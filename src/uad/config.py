# uad: Centralize environment-driven configuration constants so every module reads the same defaults.

import os

# OpenAI env (Chat Completions)
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
AI_MODEL = os.environ.get("AI_MODEL", "gpt-4o-mini")  # OpenAI model id

# Workspace layout, relative to the workspace directory unless absolute
PROJECTS_DIR = os.environ.get("UAD_PROJECTS_DIR", "Projects")
CHATS_DIR = os.environ.get("UAD_CHATS_DIR", "Chats")

# File holding a saved API key when none is set in the environment
KEY_FILE = os.environ.get("UAD_KEY_FILE", "user_key.txt")

# Output token budget
MAX_COMPLETION_TOKENS = int(os.environ.get("UAD_MAX_COMPLETION_TOKENS", "4096"))

# Seconds to wait on a single backend call
HTTP_TIMEOUT = int(os.environ.get("UAD_HTTP_TIMEOUT", "600"))

# Prior turns replayed to the model on each request
CONV_CAP_TURNS = int(os.environ.get("UAD_CONV_CAP_TURNS", "20"))

# Marker file that turns a directory under PROJECTS_DIR into a project
LANGUAGE_MARKER = "language.txt"

# Transcript file name inside each chat directory
HISTORY_FILE = "history.txt"
