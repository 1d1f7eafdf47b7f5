"""Personal context learning engine for email reply drafting."""
