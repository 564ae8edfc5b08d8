from collections.abc import Sequence

from src.domain.entities import Attachment, ListingRecord
from src.domain.submission import CallerIdentity
from src.rules.models import Rules

EDIT_ANY_LISTING = "listings:edit_any"
USE_ANY_MEDIA = "media:use_any"
BYPASS_SPAM = "spam:bypass"


class PolicyEngine:
    def __init__(self, rules: Rules):
        self.rules = rules

    def check_permission(self, identity: CallerIdentity, action: str) -> bool:
        """
        Check if any of the caller's roles grants the action.

        Anonymous callers hold no permissions. Supports "*" and scoped
        wildcards ("listings:*" matches "listings:edit_any").
        """
        if not identity.is_authenticated:
            return False
        return self._roles_allow(identity.roles, action)

    def _roles_allow(self, roles: Sequence[str], action: str) -> bool:
        accepted = {"*", action}
        if ":" in action:
            accepted.add(action.split(":")[0] + ":*")
        return any(accepted & set(self.rules.rbac.roles.get(role, [])) for role in roles)

    def can_edit_listing(self, identity: CallerIdentity, record: ListingRecord) -> bool:
        """Author of the listing, or a role with edit-any rights."""
        if not identity.is_authenticated:
            return False
        if record.author_id == identity.user_id:
            return True
        return self.check_permission(identity, EDIT_ANY_LISTING)

    def can_use_attachment(self, identity: CallerIdentity, attachment: Attachment) -> bool:
        """
        Whether the caller may reference this attachment as a featured image.

        Blocks reuse of another user's private upload by guessing its id.
        """
        if not attachment.is_image:
            return False
        if self.check_permission(identity, USE_ANY_MEDIA):
            return True
        return identity.is_authenticated and attachment.owner_id == identity.user_id

    def can_bypass_spam_checks(self, identity: CallerIdentity) -> bool:
        return self.check_permission(identity, BYPASS_SPAM)
