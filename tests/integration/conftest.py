"""
Integration Test Configuration

Provides fixtures and configuration for integration tests.
When running in CI environment (CI=true), slow tests are automatically skipped.
Tests marked with @pytest.mark.slow talk to the live oracle and are also
skipped when ANTHROPIC_API_KEY is not set.
"""

import os

import pytest


@pytest.fixture
def is_ci_environment() -> bool:
    """
    Detect if tests are running in CI environment.

    Returns:
        True if CI environment variable is set to 'true'
    """
    return os.getenv("CI", "").lower() == "true"


@pytest.fixture(autouse=True)
def skip_slow_tests(request, is_ci_environment):
    """
    Automatically skip slow integration tests in CI or without credentials.

    Args:
        request: pytest request fixture
        is_ci_environment: Fixture indicating CI environment
    """
    if not request.node.get_closest_marker("slow"):
        return
    if is_ci_environment:
        pytest.skip("Skipping slow test in CI environment")
    if not os.getenv("ANTHROPIC_API_KEY"):
        pytest.skip("ANTHROPIC_API_KEY not set")
