"""
MockPrep Configuration System
=============================

This file contains ALL configuration for the mock interview system.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interviewer
# =============================================================================

# REQUIRED: Set your Google Cloud project
GOOGLE_CLOUD_PROJECT = "your-project-id"  # Change this!
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Realtime voice mode (optional)
OPENAI_API_KEY = None

# Storage
DATA_DIR = "./_mockprep"

# Speech settings
ENABLE_TTS = True
TTS_VOICE = "en-US-Neural2-D"
TTS_SPEAKING_RATE = 1.15
LANGUAGE_CODE = "en-US"

# Logging
LOG_FILE = "./_mockprep/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERVIEW BUDGET
# =============================================================================

# Question count is "interviewer messages so far + 1"
QUESTION_WRAP_UP_THRESHOLD = 9
QUESTION_HARD_LIMIT = 11
TIME_WRAP_UP_MINUTES = 25
TIME_HARD_LIMIT_MINUTES = 30

FALLBACK_REPLY = "I apologize, could you repeat that?"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Audio processing
SAMPLE_RATE_CAPTURE = 48000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
CHUNK_MS = 100
TARGET_RMS = 0.06

# Visualization
FFT_SIZE = 256
VISUALIZER_BUCKETS = 32
VISUALIZER_FPS = 60
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 500
REPLY_TEMPERATURE = 0.7
EXTRACTION_INPUT_CHARS = 15000

# Realtime
REALTIME_BASE_URL = "https://api.openai.com/v1"
REALTIME_MODEL = "gpt-4o-realtime-preview-2024-12-17"
REALTIME_VOICE = "ash"
REALTIME_TRANSCRIPTION_MODEL = "whisper-1"
REALTIME_VAD_THRESHOLD = 0.5
REALTIME_PREFIX_PADDING_MS = 300
REALTIME_SILENCE_DURATION_MS = 1500
REALTIME_TIMEOUT = 30.0
REALTIME_EVENTS_CHANNEL = "oai-events"


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    google_cloud_project: str
    google_application_credentials: Optional[str] = None
    vertex_location: str = VERTEX_LOCATION
    model_name: str = MODEL_NAME
    openai_api_key: Optional[str] = OPENAI_API_KEY
    realtime_base_url: str = REALTIME_BASE_URL
    realtime_model: str = REALTIME_MODEL
    realtime_voice: str = REALTIME_VOICE
    data_dir: str = DATA_DIR
    enable_tts: bool = ENABLE_TTS
    tts_voice: str = TTS_VOICE
    tts_speaking_rate: float = TTS_SPEAKING_RATE
    language_code: str = LANGUAGE_CODE
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL


def get_config() -> Config:
    """Load configuration, letting environment variables override the defaults above."""
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    credentials = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS

    if project == "your-project-id":
        raise ValueError("Please set GOOGLE_CLOUD_PROJECT in config.py or as environment variable")

    return Config(
        google_cloud_project=project,
        google_application_credentials=credentials,
        vertex_location=os.getenv("VERTEX_LOCATION") or VERTEX_LOCATION,
        model_name=os.getenv("MODEL_NAME") or MODEL_NAME,
        openai_api_key=os.getenv("OPENAI_API_KEY") or OPENAI_API_KEY,
        realtime_base_url=os.getenv("REALTIME_BASE_URL") or REALTIME_BASE_URL,
        realtime_model=os.getenv("REALTIME_MODEL") or REALTIME_MODEL,
        realtime_voice=os.getenv("REALTIME_VOICE") or REALTIME_VOICE,
        data_dir=os.getenv("MOCKPREP_DATA_DIR") or DATA_DIR,
        log_file=os.getenv("MOCKPREP_LOG_FILE") or LOG_FILE,
        log_level=os.getenv("LOG_LEVEL") or LOG_LEVEL,
    )
