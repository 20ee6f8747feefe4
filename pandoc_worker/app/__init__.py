"""
Application layer - Core business logic.

Contains the main application workflows:
- pipeline: per-delivery decode, stage, convert, publish and ack
- result_publisher: sends conversion outcomes to the output queue
- redis_worker: queue consumer loop feeding the pipeline
"""
