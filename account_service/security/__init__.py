"""Password hashing and bearer token primitives."""
