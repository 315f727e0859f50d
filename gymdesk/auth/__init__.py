"""Employee login, session cookie and request authorization."""
