"""ssoauth utility modules."""
