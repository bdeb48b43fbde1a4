"""Quiz attempt engine for the e-learning platform."""
