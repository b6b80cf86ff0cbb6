import json
import logging
from pathlib import Path

from storefront.storage import write_atomic

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'defaultRate': 0.10,
    'minimumPayout': 50,
    'payoutSchedule': 'monthly',
    'cookieDuration': 30,
    'terms': 'Standard affiliate terms apply'
}


class AffiliateSettingsStore:
    """Program-wide affiliate settings kept in one JSON file, merged over defaults on read."""

    def __init__(self, data_dir):
        self.path = Path(data_dir) / 'affiliate-settings.json'

    def load(self):
        settings = dict(DEFAULT_SETTINGS)
        if not self.path.exists():
            return settings
        try:
            saved = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.error('Error loading affiliate settings: %s', e)
            return settings
        if isinstance(saved, dict):
            settings.update(saved)
        return settings

    def save(self, changes):
        """Persist already validated changes on top of the current settings."""
        settings = self.load()
        settings.update(changes)
        write_atomic(self.path, json.dumps(settings, indent=2))
        logger.info('Affiliate settings saved')
        return settings

    @property
    def default_rate(self):
        return self.load()['defaultRate']
