from pydantic import BaseModel


class CapabilitySet(BaseModel):
    can_configure: bool = False
    can_manage_scores: bool = False
    is_referee: bool = False
    is_admin: bool = False

    @classmethod
    def maximal(cls) -> "CapabilitySet":
        return cls(can_configure=True, can_manage_scores=True, is_referee=True, is_admin=True)

    @classmethod
    def minimal(cls) -> "CapabilitySet":
        return cls()

    @property
    def has_any(self) -> bool:
        return self.can_configure or self.can_manage_scores or self.is_referee or self.is_admin
