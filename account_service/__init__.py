"""Account registration, login and bearer-token protected profiles."""
