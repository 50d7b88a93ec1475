# backend -- FastAPI server + SQL models for the Metior platform
#
# Modules:
#   app         -- FastAPI application factory with lifespan management
#   database    -- PostgreSQL / SQLite async engine
#   models      -- SQLAlchemy ORM models (companies, investors, users, plugins)
#   schemas     -- Pydantic request/response schemas
#   auth        -- viewer / session resolution
#   entities    -- entity payloads handed to plugin components
#   errors      -- HTTP mapping for typed errors
#   migrate_csv -- CSV -> database seed loader
#   routes/     -- API endpoints (companies, investors, search, plugins)
