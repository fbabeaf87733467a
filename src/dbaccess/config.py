"""
Configuration from environment. No hardcoded credentials.
Copy .env.example to .env at project root; every value has a local-development default.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (two levels above the package: src/dbaccess)
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

MYSQL = {
    "host": os.environ.get("MYSQL_HOST", "localhost"),
    "port": int(os.environ.get("MYSQL_PORT", "3306")),
    "user": os.environ.get("MYSQL_USER", "root"),
    "password": os.environ.get("MYSQL_PASSWORD", ""),
    "database": os.environ.get("MYSQL_DATABASE", ""),
}

# Charset used on connect when a Database is not given one explicitly
ENC_CHARSET = os.environ.get("DB_CHARSET", "utf8mb4")

CONNECT_TIMEOUT = int(os.environ.get("DB_CONNECT_TIMEOUT", "10"))

# Queries slower than this are logged as warnings; 0 = disabled
SLOW_QUERY_SECONDS = float(os.environ.get("DB_SLOW_QUERY_SECONDS", "0"))
