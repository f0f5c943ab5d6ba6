"""
Configuration for WasteWise
Values come from the environment (or a local .env file)
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Supabase configuration
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")
DATABASE_URL = os.getenv("DATABASE_URL")
SQL_DEBUG = os.getenv("SQL_DEBUG", "false").lower() == "true"

# Gemini configuration (GOOGLE_API_KEY accepted for compatibility)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

# Storage buckets
WASTE_IMAGES_BUCKET = os.getenv("WASTE_IMAGES_BUCKET", "waste-images")
MEDIA_BUCKET = os.getenv("MEDIA_BUCKET", "media")

# Community rules
ESCALATION_THRESHOLD = int(os.getenv("ESCALATION_THRESHOLD", "15"))

# Geolocation lookup
GEOLOCATION_URL = os.getenv("GEOLOCATION_URL", "http://ip-api.com/json")
GEOLOCATION_TIMEOUT = float(os.getenv("GEOLOCATION_TIMEOUT", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
