"""Goal Assistant API."""
