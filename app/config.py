"""Impact reporting settings, read from environment variables."""
import os

DEFAULT_CURRENCY = os.getenv("IMPACT_DEFAULT_CURRENCY", "EUR")

# Trust gate: only events that ended inside the window count as outstanding
TRUST_WINDOW_DAYS = int(os.getenv("TRUST_WINDOW_DAYS", "90"))
TRUST_MAX_OUTSTANDING = int(os.getenv("TRUST_MAX_OUTSTANDING", "2"))
TRUST_MAX_OVERDUE_DAYS = int(os.getenv("TRUST_MAX_OVERDUE_DAYS", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "false").lower() in ("1", "true", "yes")

# Base URL used by app.client.ImpactClient
API_URL = os.getenv("IMPACT_API_URL", "http://localhost:8000/api")
