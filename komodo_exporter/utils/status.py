"""Komodo server state enumeration."""

from enum import Enum


class ServerState(Enum):
    """Server state as reported by the Komodo ListServers call."""

    OK = "Ok"
    NOT_OK = "NotOk"
    DISABLED = "Disabled"

    @classmethod
    def parse(cls, value: str) -> "ServerState":
        """
        Map a raw state string to a known state.

        Args:
            value: State string from the API

        Returns:
            ServerState: Matching state, NOT_OK for anything unrecognised
        """
        for state in cls:
            if state.value == value:
                return state
        return cls.NOT_OK
