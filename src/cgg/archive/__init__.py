"""Archive access: transports and RRD decoding."""
