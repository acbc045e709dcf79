import logging
from typing import Dict, List, Optional

from app.core.exceptions import PlatformAPIError
from app.schemas.platform import Relationship
from app.services.platform_client import credentials_for

logger = logging.getLogger(__name__)

MAX_LOOKUP_UIDS = 100


class RelationshipValidator:
    """Checks a batch of targets against the live relationship data in one call.

    friendships/lookup is limited to 15 calls per 15 minutes but accepts up to
    100 uids per call, so a whole batch costs a single request.
    """

    def __init__(self, platform, max_uids: int = MAX_LOOKUP_UIDS):
        self.platform = platform
        self.max_uids = max_uids

    async def lookup(self, account, sink_uids: List[str]) -> Optional[Dict[str, Relationship]]:
        """Map each sink uid to its relationship with ``account``.

        Uids missing from the response get no entry. Returns None when the
        batch must not be classified: too many uids, or the lookup failed.
        """
        if len(sink_uids) > self.max_uids:
            logger.error(f"No more than {self.max_uids} sink uids allowed. Given {len(sink_uids)}")
            return None

        logger.debug(f"Checking follow status {account.uid} --???--> {len(sink_uids)} users")
        try:
            relationships = await self.platform.lookup_relationships(credentials_for(account), sink_uids)
        except PlatformAPIError as e:
            logger.error(
                f"Error /friendships/lookup {e.status_code} for {account.screen_name}: {e.data}"
            )
            return None

        return {relationship.id: relationship for relationship in relationships}
