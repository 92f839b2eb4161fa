"""Core building blocks: configuration, job records, queues, modes and workers."""
