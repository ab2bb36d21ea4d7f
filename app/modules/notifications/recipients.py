"""Recipient address resolution."""

import hashlib
import re
from typing import Protocol

from infrastructure.notifications import ChannelName

_NON_DIGITS = re.compile(r"\D")


class RecipientResolver(Protocol):
    """Maps a user to the address a channel delivers to."""

    def resolve(self, user_id: str, channel: str) -> str:
        ...


class DirectoryRecipientResolver:
    """Deterministic user directory.

    Addresses are derived from the user id so that the same user always
    resolves to the same email address, phone number and device token:

    - email: ``user{id}@example.com``
    - sms: ``+1555`` followed by the digits of the id, zero-padded to 7
    - push: ``fcm_token_{id}_`` followed by 30 hex characters of sha1(id)

    Unknown channels fall back to the email address.
    """

    def resolve(self, user_id: str, channel: str) -> str:
        if channel == ChannelName.SMS.value:
            digits = _NON_DIGITS.sub("", user_id)
            return f"+1555{digits.zfill(7)}"
        if channel == ChannelName.PUSH.value:
            suffix = hashlib.sha1(user_id.encode("utf-8")).hexdigest()[:30]
            return f"fcm_token_{user_id}_{suffix}"
        return f"user{user_id}@example.com"
