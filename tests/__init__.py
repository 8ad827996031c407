# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Tesatiki API:
# - fakes.py: In-memory records service, B2 API transport and response cache
# - test_credentials.py / test_validators.py: Hashing, tokens, sanitizers
# - test_*_client.py, test_*_service.py: Library and service units
# - test_*_routes.py: Endpoint tests through FastAPI's TestClient
# - test_tasks.py: Celery sweep task and beat schedule
#
# Run tests with: pytest
# =============================================================================
