"""
kokoro-stream Services Layer.

    - engine.py: Engine facade (load, synthesize, stream)
    - errors.py: Error codes and exception hierarchy
    - validators.py: Input validation
"""
