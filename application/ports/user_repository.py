"""
User repository port (interface).

Only the app mode is read and written by this service.
"""

from typing import Dict, Optional, Protocol


class UserRepository(Protocol):
    """
    Repository interface for user mode settings.
    """

    def get_mode(self, user_id: str) -> Optional[str]:
        """
        Get the user's current app mode.

        Returns:
            Mode string, None if the user has not chosen one
        """
        ...

    def set_mode(self, user_id: str, mode: str) -> Dict:
        """
        Store the user's app mode and the time it was switched.

        Returns:
            Updated user dictionary
        """
        ...
