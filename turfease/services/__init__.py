"""Business logic for accounts, verification, approval and turf listings."""
