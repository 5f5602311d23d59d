"""
Message catalogs and the ``Translator`` used for notification text.

Only human-facing notification subjects and bodies are translated.
Lookups never fail: an unknown locale falls back to the default
locale, and an unknown key falls back to the key itself.
"""

import logging
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

CATALOGS: Dict[str, Dict[str, str]] = {
    "en": {
        "event.created.subject": "Event created",
        "event.created.body": "Your event \"{title}\" on {date} has been created.",
        "event.updated.subject": "Event updated",
        "event.updated.body": "Your event \"{title}\" on {date} has been updated.",
        "event.deleted.subject": "Event deleted",
        "event.deleted.body": "Your event \"{title}\" on {date} has been deleted.",
    },
    "es": {
        "event.created.subject": "Evento creado",
        "event.created.body": "Tu evento \"{title}\" del {date} ha sido creado.",
        "event.updated.subject": "Evento actualizado",
        "event.updated.body": "Tu evento \"{title}\" del {date} ha sido actualizado.",
        "event.deleted.subject": "Evento eliminado",
        "event.deleted.body": "Tu evento \"{title}\" del {date} ha sido eliminado.",
    },
    "fr": {
        "event.created.subject": "Événement créé",
        "event.created.body": "Votre événement « {title} » du {date} a été créé.",
        "event.updated.subject": "Événement mis à jour",
        "event.updated.body": "Votre événement « {title} » du {date} a été mis à jour.",
        "event.deleted.subject": "Événement supprimé",
        "event.deleted.body": "Votre événement « {title} » du {date} a été supprimé.",
    },
    "de": {
        "event.created.subject": "Veranstaltung erstellt",
        "event.created.body": "Ihre Veranstaltung \"{title}\" am {date} wurde erstellt.",
        "event.updated.subject": "Veranstaltung aktualisiert",
        "event.updated.body": "Ihre Veranstaltung \"{title}\" am {date} wurde aktualisiert.",
        "event.deleted.subject": "Veranstaltung gelöscht",
        "event.deleted.body": "Ihre Veranstaltung \"{title}\" am {date} wurde gelöscht.",
    },
}


class Translator:
    """Look up message templates by key.

    Parameters
    ----------
    default_locale : str
        Locale used when none is requested or the requested one has no
        catalog.
    catalogs : Mapping
        Locale → key → template.  Defaults to the bundled ``CATALOGS``.
    """

    def __init__(self, default_locale: str = "en", catalogs: Optional[Mapping[str, Mapping[str, str]]] = None) -> None:
        self.catalogs = catalogs if catalogs is not None else CATALOGS
        self.default_locale = default_locale

    def translate(self, key: str, locale: Optional[str] = None, **params: str) -> str:
        """Return the template for ``key`` formatted with ``params``."""
        for candidate in (locale, self.default_locale):
            if candidate and key in self.catalogs.get(candidate, {}):
                template = self.catalogs[candidate][key]
                break
        else:
            logger.debug("No translation for %s (locale %s)", key, locale)
            return key
        try:
            return template.format(**params)
        except (KeyError, IndexError, ValueError):
            logger.warning("Could not format message %s", key)
            return template
