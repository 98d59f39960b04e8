import logging
from typing import Optional

from supabase import Client, create_client

from schedmatch.config import AUTH_CONFIG, SUPABASE_CONFIG
from schedmatch.errors import AuthenticationRequiredError, ScheduleError

logger = logging.getLogger(__name__)


class SupabaseInitializer:
    def __init__(self, supabase_url=None, anon_key=None):
        # Explicit arguments win over .env values
        self.supabase_url = supabase_url if supabase_url else SUPABASE_CONFIG.get('url')
        self.anon_key = anon_key if anon_key else SUPABASE_CONFIG.get('key')

        if not self.supabase_url or not self.anon_key:
            raise ScheduleError(
                "Supabase is not configured",
                hint="Set SUPABASE_URL and SUPABASE_ANON_KEY (environment or .env).",
            )

        self.supabase: Client = create_client(self.supabase_url, self.anon_key)
        logger.info(f"Supabase client initialized with URL: {self.supabase_url}")


def sign_in(supabase, access_token: Optional[str] = None, email: Optional[str] = None,
            password: Optional[str] = None) -> str:
    """
    Authenticate the client and return the user id.

    A user access token is tried first, then email/password. Both fall back
    to AUTH_CONFIG.
    """
    token = access_token or AUTH_CONFIG.get('access_token')
    if token:
        user_response = supabase.auth.get_user(token)
        user = getattr(user_response, 'user', None) if user_response else None
        if not user:
            raise AuthenticationRequiredError("Access token was rejected")
        # Run table queries as this user so row level security applies
        supabase.postgrest.auth(token)
        logger.info(f"Authenticated with access token as {user.id}")
        return str(user.id)

    email = email or AUTH_CONFIG.get('email')
    password = password or AUTH_CONFIG.get('password')
    if email and password:
        response = supabase.auth.sign_in_with_password({"email": email, "password": password})
        user = getattr(response, 'user', None) if response else None
        if not user:
            raise AuthenticationRequiredError(f"Sign in failed for {email}")
        logger.info(f"Signed in as {email}")
        return str(user.id)

    raise AuthenticationRequiredError("User must be authenticated")
