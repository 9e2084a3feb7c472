"""
Happiness Scheduler

Places prioritised tasks onto working hours around fixed calendar events,
re-optimises as disruptions arrive, and negotiates bookable meeting times.
"""

__version__ = "1.0.0"
