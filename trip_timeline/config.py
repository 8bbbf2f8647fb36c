"""Configuration: .env loading, paths, constants."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Project root = parent of trip_timeline/
PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")

# --- LLM API ---
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")

# Gemini via OpenAI-compatible endpoint when a Google key is present
LLM_BACKEND = os.getenv("LLM_BACKEND", "gemini" if GOOGLE_API_KEY else "openai")
LLM_MODEL_PRIMARY = os.getenv("LLM_MODEL_PRIMARY", "gemini-2.0-flash" if LLM_BACKEND == "gemini" else "gpt-4o-mini")
LLM_MODEL_FALLBACK = os.getenv("LLM_MODEL_FALLBACK", "gemini-2.5-flash" if LLM_BACKEND == "gemini" else "gpt-4o")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

# --- Paths ---
STORE_PATH = Path(os.getenv("TRIP_STORE_PATH", str(PROJECT_ROOT / "trip_store.json")))

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- Grouping ---
MAX_GAP_DAYS = 7  # steps further apart than this start a new trip

# --- Distance ---
EARTH_RADIUS_MILES = 3959
SHORT_WALK_MILES = 0.3
SUPPRESS_DISTANCE_MILES = 0.05  # below this, consecutive stops are co-located

# --- Sharing ---
SHARE_TOKEN_LENGTH = 12
SHARE_TOKEN_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"

# --- Extraction ---
MAX_BODY_CHARS = 12000  # truncate email body sent to LLM
