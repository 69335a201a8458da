"""Content handlers loaded by the device update agent."""
