"""Session state, timer reconciliation, scoring and event coordination."""
