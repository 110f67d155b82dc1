"""
Utility Modules for kokoro-stream.

    - audio.py: WAV encoding and PCM conversion
    - text.py: English text normalization
    - timeit.py: Stage timing
"""
