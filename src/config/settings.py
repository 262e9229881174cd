"""Global configuration and constants for the portal table engine."""

from __future__ import annotations

import os
from typing import Final

API_BASE_URL: Final = os.environ.get("PORTAL_API_BASE_URL", "http://localhost:3000/api/")
DEFAULT_TIMEOUT: Final = 15  # seconds
DATA_DIR: Final = os.environ.get("PORTAL_DATA_DIR", "data")

# Entity types that own a data table (and therefore a store).
# Keep in sync with the CRUD endpoints exposed by the API.
ENTITY_TYPES: Final = (
    "clients",
    "vendors",
    "offices",
    "warehouses",
    "branches",
    "invoices",
    "products",
    "employees",
    "employee_requests",
    "salaries",
    "jobs",
    "companies",
    "departments",
    "job_listings",
    "expenses",
    "purchases",
    "quotes",
    "roles",
    "users",
    "domains",
    "servers",
    "websites",
    "online_stores",
)

# Field used as the stable row identifier for selection and staged deletes
ROW_ID_FIELD: Final = "id"
