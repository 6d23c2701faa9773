"""
Locale packs, one YAML file per deployment language.

Each pack defines:
- name: Locale identifier (file stem)
- language_tag: BCP 47 tag handed to the speech engines
- fallback_context: Context block used when no knowledge item matches
- system_prompt: Instruction template; {context} is replaced by the context block
- apology: Reply shown when a query fails
- statuses: Display text per pipeline status
"""
