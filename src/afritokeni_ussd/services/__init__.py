"""Application services: the use cases the USSD router and the agent API call."""
