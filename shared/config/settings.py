import os
from dotenv import load_dotenv

load_dotenv()

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5432")
DB_NAME = os.getenv("POSTGRES_DB", "storefront")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# Postal code lookup (ViaCEP compatible)
ADDRESS_LOOKUP_URL = os.getenv("ADDRESS_LOOKUP_URL", "https://viacep.com.br/ws")

# Carrier aggregation API (quotes + labels)
CARRIER_API_URL = os.getenv("CARRIER_API_URL", "https://sandbox.melhorenvio.com.br/api/v2")
CARRIER_API_TOKEN = os.getenv("CARRIER_API_TOKEN", "")
CARRIER_CONTACT_EMAIL = os.getenv("CARRIER_CONTACT_EMAIL", "")

HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10.0"))

# Sender details used for quotes and shipping labels
STORE_ORIGIN_POSTAL_CODE = os.getenv("STORE_ORIGIN_POSTAL_CODE", "01001000")
STORE_NAME = os.getenv("STORE_NAME", "Storefront")
STORE_PHONE = os.getenv("STORE_PHONE", "")
STORE_EMAIL = os.getenv("STORE_EMAIL", "")
STORE_DOCUMENT = os.getenv("STORE_DOCUMENT", "")
STORE_STREET = os.getenv("STORE_STREET", "")
STORE_NUMBER = os.getenv("STORE_NUMBER", "")
STORE_COMPLEMENT = os.getenv("STORE_COMPLEMENT") or None
STORE_DISTRICT = os.getenv("STORE_DISTRICT", "")
STORE_CITY = os.getenv("STORE_CITY", "")
STORE_STATE = os.getenv("STORE_STATE", "")

ORDER_RATE_LIMIT = os.getenv("ORDER_RATE_LIMIT", "30/minute")
