"""Account aggregate, request contracts and workflows."""
