# Domain exceptions raised by the revision service.
# The controller layer catches these and converts them to HTTPException.


class InvalidRevisionSnapshotError(Exception):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid revision snapshot: {reason}")


class RevisionNotFoundError(Exception):
    def __init__(self, revision_id) -> None:
        self.revision_id = revision_id
        super().__init__(f"Revision {revision_id} not found")
