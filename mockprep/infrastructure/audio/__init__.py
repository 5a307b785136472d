"""Audio infrastructure: microphone capture, signal processing, speech services."""
