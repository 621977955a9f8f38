"""Account lifecycle backend: email verification tokens and grace-period deletion."""
