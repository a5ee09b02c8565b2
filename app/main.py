from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.error_handlers import register_error_handlers
from app.core.logging_config import configure_logging
from app.database.db import Base, engine

# Import models so that they register with Base.metadata
from app.models import categories, events, requests, users  # noqa: F401
from app.routes import categories as category_routes
from app.routes import events as event_routes
from app.routes import requests as request_routes
from app.routes import users as user_routes

configure_logging()

app = FastAPI(title="Event Admission Service")

register_error_handlers(app)

# Configure CORS
origins = [
    "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create all tables (in production, use migrations such as Alembic)
Base.metadata.create_all(bind=engine)

# Include the routers
app.include_router(user_routes.router)
app.include_router(category_routes.router)
app.include_router(event_routes.router)
app.include_router(request_routes.router)
