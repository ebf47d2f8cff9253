"""
HTTP API for voiso.

    - routes.py: Generation, storage, health and metrics endpoints
    - voices.py: Voice management endpoints
    - account.py: Quota, plan and history endpoints
    - schemas.py: Pydantic request/response models
    - dependencies.py: Settings, services and caller injection
"""
