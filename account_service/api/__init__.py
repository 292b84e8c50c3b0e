"""HTTP surface of the account service."""
