"""Service layer of the quiz attempt engine."""
