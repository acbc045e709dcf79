from typing import Any, Optional


class PlatformAPIError(Exception):
    """Error response (or transport failure) from the social platform API.

    ``status_code`` is ``None`` when no HTTP response was received.
    """

    def __init__(self, status_code: Optional[int], data: Any = None):
        self.status_code = status_code
        self.data = data
        super().__init__(f"Platform API error {status_code}: {data}")
