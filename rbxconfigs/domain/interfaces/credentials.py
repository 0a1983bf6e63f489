"""Interface for session credential providers.

The HTTP pipeline is agnostic to how the session credential was obtained:
an environment variable, a config file or a literal token all look the
same once wrapped in a CredentialProvider.
"""

import abc

from rbxconfigs.domain.models.common import SessionCredential


class CredentialProvider(abc.ABC):
    """Abstract Base Class for supplying the initial session credential."""

    @abc.abstractmethod
    def get_credential(self) -> SessionCredential:
        """Returns the session credential.

        Called once when the API client is constructed.

        Raises:
            CredentialError: If no credential is available.
        """
        pass
