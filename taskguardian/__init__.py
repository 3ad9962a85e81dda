"""
Task Guardian — task-management HTTP API with role-based assignment rules.

Package layout:
    engine/    config, errors, logging, request context, security, policy
    db/        SQLAlchemy base, models, session management
    stores/    credential store and task store
    services/  auth, task and user-management operations
    api/       FastAPI application, routers, schemas
    cli.py     taskguardian init / run / check-config
"""

__version__ = "0.1.0"
