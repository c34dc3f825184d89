"""Identity & access: roles, principals, session tokens and account use cases."""
