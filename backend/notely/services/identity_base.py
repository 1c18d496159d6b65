"""
Notely Backend - Abstract Identity Provider Interface
=======================================================

What:  Contract for the external sign-in provider used by the auth routes.
How:   Concrete implementations (GoogleOAuthClient) inherit from
       IdentityProvider. The routes depend only on this interface, which is
       also what the test suite fakes.
"""

from abc import ABC, abstractmethod

from notely.schemas.auth import IdentityProfile


class IdentityProvider(ABC):
    """
    Abstract OAuth2 authorization-code provider.

    Contract:
        - authorization_url() builds the browser redirect for a given state
        - exchange() turns the callback code into an IdentityProfile
        - A refused or malformed exchange raises AuthFailedError
        - An unreachable provider raises UpstreamError
    """

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """Return the provider URL the browser is redirected to."""
        ...

    @abstractmethod
    async def exchange(self, code: str) -> IdentityProfile:
        """
        Exchange an authorization code for the caller's profile.

        Raises:
            AuthFailedError: Provider rejected the code or returned no subject
            UpstreamError: Provider unreachable after retries
        """
        ...
