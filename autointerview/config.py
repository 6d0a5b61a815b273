"""
AutoInterview Configuration System
==================================

This file contains ALL configuration for the interview orchestrator.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional, List


# =============================================================================
# USER SETTINGS - Edit these to customize the interviewer
# =============================================================================

# REQUIRED: Google Cloud project (used by the evaluator and speech services)
GOOGLE_CLOUD_PROJECT = "your-project-id"  # Change this!
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Storage
DATA_DIR = "./data"
ROLES_DIR = None  # None = packaged role templates
AUDIO_CACHE_DIR = "./data/audio_cache"

# Interviewer voice
BOT_NAME = "AI Interviewer"
TTS_VOICE = "en-US-Neural2-F"
LANGUAGE_CODE = "en-US"
ELEVENLABS_API_KEY = None
ELEVENLABS_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"

# Meeting backends (leave unset to run the embedded room)
RECALL_API_KEY = None
RECALL_REGION = "us-west-2"
RECALL_WEBHOOK_URL = None
MEETING_BOT_ENABLED = False
GOOGLE_CALENDAR_ID = None
PUBLIC_BASE_URL = "http://localhost:3000"
TRANSPORT_MODE = None  # None = pick automatically; or embedded-room / headless-bot / cloud-bot

# Turn timing (seconds)
QUIET_PERIOD_SECONDS = 5.0
OPENING_WAIT_SECONDS = 30.0
TECHNICAL_WAIT_SECONDS = 30.0
BEHAVIORAL_WAIT_SECONDS = 45.0
TRANSITION_DELAY_SECONDS = 2.0
CLOSING_GRACE_SECONDS = 3.0  # let the farewell finish playing before leaving

# Follow-ups
ENABLE_FOLLOWUPS = True
FOLLOWUP_MIN_CHARS = 50

# Abandoned sessions
ABANDON_MAX_AGE_HOURS = 3.0
REAPER_INTERVAL_SECONDS = 300.0

# Logging
LOG_FILE = "./data/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Bounded external calls
TRANSPORT_CALL_TIMEOUT = 15.0
MAX_PLAYBACK_WAIT = 120.0
SYNTHESIS_TIMEOUT = 20.0
EVALUATION_TIMEOUT = 60.0
JOIN_TIMEOUT = 60.0
HTTP_TIMEOUT = 30

# Capture
AI_SPEAKER_LABEL = BOT_NAME
NO_RESPONSE_SENTINEL = "[no response captured]"
SAMPLE_RATE_TARGET = 16000

# TTS technical
TTS_SAMPLE_RATE = 24000
ELEVENLABS_MODEL = "eleven_monolingual_v1"
ELEVENLABS_BASE_URL = "https://api.elevenlabs.io/v1"

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash-lite"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 1024

# Storage layout
TRACKING_FILE = "interview_tracking.json"
RESULTS_FILE = "results.json"
SESSIONS_SUBDIR = "sessions"

TRANSPORT_MODES = ("embedded-room", "headless-bot", "cloud-bot")


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


@dataclass
class Config:
    """Main configuration object."""
    google_cloud_project: Optional[str] = None
    google_application_credentials: Optional[str] = None
    data_dir: str = DATA_DIR
    roles_dir: Optional[str] = ROLES_DIR
    audio_cache_dir: str = AUDIO_CACHE_DIR
    bot_name: str = BOT_NAME
    tts_voice: str = TTS_VOICE
    language_code: str = LANGUAGE_CODE
    elevenlabs_api_key: Optional[str] = ELEVENLABS_API_KEY
    elevenlabs_voice_id: str = ELEVENLABS_VOICE_ID
    recall_api_key: Optional[str] = RECALL_API_KEY
    recall_region: str = RECALL_REGION
    recall_webhook_url: Optional[str] = RECALL_WEBHOOK_URL
    meeting_bot_enabled: bool = MEETING_BOT_ENABLED
    google_calendar_id: Optional[str] = GOOGLE_CALENDAR_ID
    public_base_url: str = PUBLIC_BASE_URL
    transport_mode: Optional[str] = TRANSPORT_MODE
    quiet_period_seconds: float = QUIET_PERIOD_SECONDS
    opening_wait_seconds: float = OPENING_WAIT_SECONDS
    technical_wait_seconds: float = TECHNICAL_WAIT_SECONDS
    behavioral_wait_seconds: float = BEHAVIORAL_WAIT_SECONDS
    transition_delay_seconds: float = TRANSITION_DELAY_SECONDS
    closing_grace_seconds: float = CLOSING_GRACE_SECONDS
    enable_followups: bool = ENABLE_FOLLOWUPS
    followup_min_chars: int = FOLLOWUP_MIN_CHARS
    abandon_max_age_hours: float = ABANDON_MAX_AGE_HOURS
    reaper_interval_seconds: float = REAPER_INTERVAL_SECONDS
    transport_call_timeout: float = TRANSPORT_CALL_TIMEOUT
    synthesis_timeout: float = SYNTHESIS_TIMEOUT
    evaluation_timeout: float = EVALUATION_TIMEOUT
    join_timeout: float = JOIN_TIMEOUT
    ai_speaker_label: str = AI_SPEAKER_LABEL
    vertex_location: str = VERTEX_LOCATION
    model_name: str = MODEL_NAME
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    def missing_required(self) -> List[str]:
        """Names of required settings that are not configured."""
        missing = []
        if not self.google_cloud_project or self.google_cloud_project == "your-project-id":
            missing.append("GOOGLE_CLOUD_PROJECT")
        return missing

    @property
    def tracking_path(self) -> str:
        return os.path.join(self.data_dir, TRACKING_FILE)

    @property
    def results_path(self) -> str:
        return os.path.join(self.data_dir, RESULTS_FILE)

    @property
    def sessions_dir(self) -> str:
        return os.path.join(self.data_dir, SESSIONS_SUBDIR)

    @property
    def has_meeting_bot_credentials(self) -> bool:
        return bool(self.recall_api_key) or self.meeting_bot_enabled

    @property
    def cloud_transcription_configured(self) -> bool:
        return bool(self.recall_api_key and self.recall_webhook_url)


def get_config() -> Config:
    """Load configuration, letting environment variables override the settings above."""
    return Config(
        google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT,
        google_application_credentials=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS,
        data_dir=os.getenv("INTERVIEW_DATA_DIR") or DATA_DIR,
        roles_dir=os.getenv("INTERVIEW_ROLES_DIR") or ROLES_DIR,
        audio_cache_dir=os.getenv("INTERVIEW_AUDIO_CACHE_DIR") or AUDIO_CACHE_DIR,
        bot_name=os.getenv("INTERVIEW_BOT_NAME") or BOT_NAME,
        tts_voice=os.getenv("INTERVIEW_TTS_VOICE") or TTS_VOICE,
        elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY") or ELEVENLABS_API_KEY,
        elevenlabs_voice_id=os.getenv("ELEVENLABS_VOICE_ID") or ELEVENLABS_VOICE_ID,
        recall_api_key=os.getenv("RECALL_API_KEY") or RECALL_API_KEY,
        recall_region=os.getenv("RECALL_REGION") or RECALL_REGION,
        recall_webhook_url=os.getenv("RECALL_WEBHOOK_URL") or RECALL_WEBHOOK_URL,
        meeting_bot_enabled=_env_bool("MEETING_BOT_ENABLED", MEETING_BOT_ENABLED),
        google_calendar_id=os.getenv("GOOGLE_CALENDAR_ID") or GOOGLE_CALENDAR_ID,
        public_base_url=os.getenv("PUBLIC_BASE_URL") or PUBLIC_BASE_URL,
        transport_mode=os.getenv("INTERVIEW_TRANSPORT_MODE") or TRANSPORT_MODE,
        quiet_period_seconds=_env_float("INTERVIEW_QUIET_PERIOD", QUIET_PERIOD_SECONDS),
        closing_grace_seconds=_env_float("INTERVIEW_CLOSING_GRACE", CLOSING_GRACE_SECONDS),
        abandon_max_age_hours=_env_float("INTERVIEW_ABANDON_HOURS", ABANDON_MAX_AGE_HOURS),
        log_file=os.getenv("INTERVIEW_LOG_FILE") or LOG_FILE,
    )
