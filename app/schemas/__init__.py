"""Beanie ODM schemas for MongoDB collections.

Documents are imported from their modules (`app.schemas.live_session`, ...);
the package itself stays import-light because the domain models depend on
`app.schemas.live_queue_state`.
"""
