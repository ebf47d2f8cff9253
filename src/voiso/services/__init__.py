"""
Business logic for voiso.

    - errors.py: Client-visible error taxonomy
    - validators.py: Request validation
    - quota.py: Rolling daily quota
    - voices.py: Voice access control and management
    - generation_service.py: The generation pipeline
    - factory.py: Service wiring and the process-wide bundle
"""
