class LoadGate:
    """Counts in-flight requests and turns the count into a 0-100 load score."""

    def __init__(self, capacity: int = 100, shed_threshold: int = 90):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.shed_threshold = shed_threshold
        self.active = 0

    def enter(self) -> None:
        self.active += 1

    def leave(self) -> None:
        self.active = max(0, self.active - 1)

    @property
    def load(self) -> int:
        return min(100, round(self.active * 100 / self.capacity))

    def should_shed(self) -> bool:
        return self.load > self.shed_threshold
