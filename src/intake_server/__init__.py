"""intake_server — FastAPI REST API for the intake form SDK.

Exposes form validation, submission, drafts, the patient session, and the
offline queue over HTTP.  One server instance serves one intake device:
the local state file (session id, pending submissions, drafts) is shared
by every request.
"""
