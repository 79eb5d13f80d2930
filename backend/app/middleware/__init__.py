# Middleware package init
"""
Wayfarer Backend — Middleware Package
=======================================

What:  The ordered request pipeline in front of the router.
Why:   Security, quota and input cleaning apply to every route; none of it
       belongs in the handlers.

Pipeline (outermost first, installed by pipeline.install_middleware):
    Request
      → [Static files]        hit: file served, request ends here
      → [Security headers]    added to every response on the way out
      → [Request ID]          correlation id for logs
      → [Error supervisor]    anything escaping below is rendered as an error
      → [Dev logging]         access log in development mode only
      → [Rate limit]          /api only, per client address
      → [Body parser]         JSON / URL-encoded, 10 KB cap
      → [Cookies]
      → [Query injection]     `$`-prefixed and dotted keys dropped
      → [XSS]                 string values HTML-escaped
      → [Parameter pollution] repeated query keys collapsed
      → [Request time]
      → Router

Stages that reject a request (rate limit, body parser) return the error
response themselves through app.error_handlers.render_error.
"""
