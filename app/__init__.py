"""
IndiePick application package.

  app/services/  business logic: filter validation, random selection,
                   recently-shown tracking and similar-game lookup.

``IndieFinder`` (in ``indiepick.py``) is the integration point: it creates the
catalog client and the service instances in ``__init__`` and exposes them as
public attributes (e.g. ``finder.selector``).  Route handlers in
``indiepick_web.py`` call the finder, keeping the HTTP layer separate from
the domain.
"""
