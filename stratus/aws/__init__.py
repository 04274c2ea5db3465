"""AWS resource definitions for Stratus."""
