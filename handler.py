# handler.py
"""AWS Lambda handler using Mangum adapter for FastAPI.

This module provides the entry point for AWS Lambda to invoke
the budget alerts API. Mangum translates API Gateway events
to ASGI format that FastAPI understands.
"""

from mangum import Mangum
from budget_alerts.main import app

# lifespan="auto" lets cold starts run the table bootstrap once per container
handler = Mangum(app, lifespan="auto")
