import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    # Relational store (client table + answers)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "postgresql://localhost/surveybot")

    # Survey back-office (pending clients + question catalog)
    BACKEND_BASE_URL: str = os.getenv("BACKEND_BASE_URL", "http://localhost:8080").rstrip("/")
    DIRECTORY_PENDING_PATH: str = os.getenv("DIRECTORY_PENDING_PATH", "/api/clients/non-respondus")
    CATALOG_QUESTIONS_PATH: str = os.getenv("CATALOG_QUESTIONS_PATH", "/api/clients/questions/{survey_id}")

    # Chat gateway
    MESSENGER_BASE_URL: str = os.getenv("MESSENGER_BASE_URL", "http://localhost:3000").rstrip("/")
    MESSENGER_SEND_PATH: str = os.getenv("MESSENGER_SEND_PATH", "/send")
    MESSENGER_JID_SUFFIX: str = os.getenv("MESSENGER_JID_SUFFIX", "@s.whatsapp.net")

    SHORTENER_ENABLED: bool = os.getenv("SHORTENER_ENABLED", "true").lower() == "true"
    SHORTENER_URL: str = os.getenv("SHORTENER_URL", "https://tinyurl.com/api-create.php")

    # Empty: every survey is treated as not completed and Q&A starts after T2.
    # Otherwise a URL template with {contact_id} and {survey_id} returning {"completed": bool}.
    COMPLETION_CHECK_URL: str = os.getenv("COMPLETION_CHECK_URL", "")

    HTTP_TIMEOUT_SEC: float = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))

    DEFAULT_COUNTRY_CODE: str = os.getenv("DEFAULT_COUNTRY_CODE", "212")

    # Escalation timers
    ESCALATION_DELAY_SEC: float = float(os.getenv("ESCALATION_DELAY_SEC", "120"))     # T1: greeting -> survey link
    SURVEY_CHECK_DELAY_SEC: float = float(os.getenv("SURVEY_CHECK_DELAY_SEC", "60"))  # T2: survey link -> completion check

    # Pacing (message ordering on the transport, not correctness)
    QUESTION_INTRO_DELAY_SEC: float = float(os.getenv("QUESTION_INTRO_DELAY_SEC", "2.0"))
    QUESTION_PACING_SEC: float = float(os.getenv("QUESTION_PACING_SEC", "1.0"))
    CAMPAIGN_PACING_SEC: float = float(os.getenv("CAMPAIGN_PACING_SEC", "2.0"))

    RESPONDED_STATUS: str = os.getenv("RESPONDED_STATUS", "Responded")

    # Observability
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    # Counters are written while a contact lock is held; an unreachable Redis must fail fast
    REDIS_SOCKET_TIMEOUT_SEC: float = float(os.getenv("REDIS_SOCKET_TIMEOUT_SEC", "0.5"))
    METRICS_ENABLED: bool = os.getenv("METRICS_ENABLED", "true").lower() == "true"
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    # Keep only the last four digits of phone numbers and chat addresses
    LOG_MASK_CONTACT_IDS: bool = os.getenv("LOG_MASK_CONTACT_IDS", "false").lower() == "true"

    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

settings = Settings()
