"""
HTTP surface for kb-voice-assistant.

Plays the part of the browser view: credential settings, chat transcript and
status, plus relay endpoints through which a browser client forwards its
speech-recognition notifications and plays back the assistant's utterances.
"""
