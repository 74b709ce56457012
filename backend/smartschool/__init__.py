"""SmartSchool records service: rosters, marks, attendance and transcripts."""

__version__ = "1.0.0"
