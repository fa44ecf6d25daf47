"""
Services layer - Business logic goes here.
Keep services focused on specific domains (alerts, votes, comments, users).

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Services raise gasy_hub.core.errors exceptions; routes never build
  error responses for domain failures themselves
- Each service is bound to one SQLAlchemy session
"""
