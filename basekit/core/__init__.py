"""
Core utilities shared across basekit.

This package hosts:
- configuration helpers (env vars, dotenv loading, typed settings)
- the error taxonomy
- cross-cutting services such as CSRF tokens, JWT, CORS, templates, the
  SMTP mailer and timezone-aware clocks.

Routers and services depend on these primitives instead of reading
os.environ or talking to smtplib directly.
"""
