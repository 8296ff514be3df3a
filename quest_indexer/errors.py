class MissingParent(Exception):
    """An event references an entity that does not exist in the projection.

    Not transient: the dispatcher records the event as dropped and moves on.
    """

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key
