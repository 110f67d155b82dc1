"""
Kokoro Pipeline Components.

    - vocab.py, lexicon.py, g2p_rules.py, phonemizer.py: text -> token ids
    - segmenter.py: token ids -> model-sized segments
    - voices.py: voice style tables
    - session.py, pool.py: inference runtime
    - assembler.py: crossfaded joining of segment audio
"""
