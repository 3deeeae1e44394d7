"""
Data Transfer Objects (DTOs) Layer

Plain dataclasses passed between services. HTTP and WebSocket payloads are
pydantic models in schemas.py.

Structure:
- internal/: DTOs for service-to-service communication
"""
