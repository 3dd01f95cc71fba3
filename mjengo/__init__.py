"""Mjengo construction calculator — email-verified access with metered free use and Paystack billing."""
