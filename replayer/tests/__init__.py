"""
Test suite for the replay engine.

Focus areas:
- In-flight tracking under concurrent completion
- Pacing decisions and convergence
- Watermark computation and per-shard fan-out
- End-to-end replay scenarios
- Kinesis and S3 adapters (moto)
"""
