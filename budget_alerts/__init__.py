"""Budget usage, income allocation and threshold alerting service."""
