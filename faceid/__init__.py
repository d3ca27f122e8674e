"""Real-time face identification against a small enrolled descriptor gallery."""
