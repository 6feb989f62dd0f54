"""
NoteKeeper Backend: HTTP Routers
=================================

auth       /api/auth/*        registration, login, profile, password
notes      /api/notes/*       note lifecycle, stats, export
templates  /api/templates/*   starter templates
files      /api/files/*       locally stored images
health     /health            probes
"""
