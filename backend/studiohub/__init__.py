"""studiohub backend: studio time-slot reservations and hold expiry."""
