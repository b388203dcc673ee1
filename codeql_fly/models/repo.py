from .base import SoftDeleteEntity


class Repo(SoftDeleteEntity):
    repo_id: int
    owner: str
    name: str
    has_workflow: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"
