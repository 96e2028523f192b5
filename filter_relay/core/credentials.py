from google.oauth2 import service_account

from filter_relay.config import Settings

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def normalize_private_key(private_key: str) -> str:
    # Keys passed through env vars usually carry literal "\n" sequences.
    return private_key.replace("\\n", "\n")


def build_service_account_credentials(settings: Settings) -> service_account.Credentials | None:
    """Service-account credentials from settings, or None to fall back to ADC."""
    if not (settings.gcp_project_id and settings.gcp_client_email and settings.gcp_private_key):
        return None
    info = {
        "type": "service_account",
        "project_id": settings.gcp_project_id,
        "client_email": settings.gcp_client_email,
        "private_key": normalize_private_key(settings.gcp_private_key),
        "token_uri": GOOGLE_TOKEN_URI,
    }
    return service_account.Credentials.from_service_account_info(info)
