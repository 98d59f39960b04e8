# Configuration
import os

from dotenv import load_dotenv

load_dotenv(os.getenv("SCHEDMATCH_ENV_FILE", ".env"))

SUPABASE_CONFIG = {
    'url': os.getenv('SUPABASE_URL'),
    'key': os.getenv('SUPABASE_ANON_KEY'),
}

# A user access token wins over email/password sign-in
AUTH_CONFIG = {
    'access_token': os.getenv('SCHEDMATCH_ACCESS_TOKEN'),
    'email': os.getenv('SCHEDMATCH_EMAIL'),
    'password': os.getenv('SCHEDMATCH_PASSWORD'),
}

OCR_CONFIG = {
    'tesseract_cmd': os.getenv('TESSERACT_CMD', ''),
    'lang': os.getenv('OCR_LANG', 'eng'),
    'min_confidence': float(os.getenv('OCR_MIN_CONFIDENCE', 0)),
}

HTTP_CONFIG = {
    'timeout': float(os.getenv('SCHEDMATCH_HTTP_TIMEOUT', 30)),
}
