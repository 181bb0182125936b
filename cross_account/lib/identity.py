"""Account identity resolution for the two profiles."""

import logging
from collections.abc import Callable

from botocore.exceptions import BotoCoreError, ClientError

from .aws import who_am_i
from .errors import IdentityResolutionError, SameAccountError

logger = logging.getLogger(__name__)


class AccountIdentityVerifier:
    """Resolves account ids behind profiles and checks they differ."""

    def __init__(self, who_am_i: Callable[[str], str] = who_am_i):
        self._who_am_i = who_am_i

    def resolve(self, profile: str) -> str:
        """
        Resolve the account id for a profile.

        Raises:
            IdentityResolutionError: If the profile is unknown, unauthenticated
                or the STS call fails. Not retried; the operator should log in.
        """
        try:
            account_id = self._who_am_i(profile)
        except ClientError as e:
            error = e.response.get("Error", {})
            raise IdentityResolutionError(
                profile, f"{error.get('Code', 'ClientError')}: {error.get('Message', e)}"
            ) from e
        except BotoCoreError as e:
            raise IdentityResolutionError(profile, str(e)) from e

        if not account_id:
            raise IdentityResolutionError(profile, "no account id returned")

        logger.info("Profile %s resolved to account %s", profile, account_id)
        return account_id

    @staticmethod
    def assert_distinct(account_a: str, account_b: str) -> None:
        if account_a == account_b:
            raise SameAccountError(account_a)
