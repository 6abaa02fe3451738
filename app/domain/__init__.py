"""
Domain layer containing core business logic and domain services.

Submodules:
- live: Live queue domain logic (reviewer sessions, applicant queue entries, meetings).
- utils: Domain-specific utilities (ID generation, clock).
"""
