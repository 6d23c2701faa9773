"""
Query pipeline for kb-voice-assistant.

Spoken question -> keyword retrieval -> constrained prompt -> remote completion -> spoken answer.
Speech recognition and synthesis are host capabilities consumed through
CaptureEngine / SpeechEngine; this package owns the control flow around them.

Guarantees:
- Answers come exclusively from the loaded knowledge base (prompt contract)
- At most one completion request in flight (capture debounce)
- Starting a new capture always silences the assistant first
- Every query, successful or not, ends with capture back in Idle
"""
