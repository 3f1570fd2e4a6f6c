"""Azure identity mock for testing the federated credential flow.

Provides a stand-in for azure-identity's ClientAssertionCredential that
invokes the assertion supplier exactly as the real credential does, without
any Azure AD connectivity.

Usage:
    from azure_mock import create_mock_credential_factory

    factory = create_mock_credential_factory()
    result = runner.run(config, credential_factory=factory)
    assert factory.credentials[0].assertions == ["mock-oidc-token"]
"""

from .credential import (
    MockAccessToken,
    MockClientAssertionCredential,
    MockCredentialFactory,
    create_mock_credential_factory,
)

__all__ = [
    "MockAccessToken",
    "MockClientAssertionCredential",
    "MockCredentialFactory",
    "create_mock_credential_factory",
]
