import os
import configparser
import urllib.parse
from pathlib import Path

class Config:
    """Configuration manager for the Supply Inventory Engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_dir = Path(os.environ.get('SUPPLY_INVENTORY_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        # Create config directory if it doesn't exist
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        # Load config or create default
        if self._config_path.exists():
            self._config.read(self._config_path, encoding='utf-8')
        else:
            self._create_default_config()

        self._initialized = True

    def _create_default_config(self):
        """Create default configuration file."""
        self._config['DATABASE'] = {
            'engine': 'postgresql',
            'host': 'localhost',
            'port': '5432',
            'database': 'supply_inventory',
            'username': 'postgres',
            'password': 'postgres',
            'echo': 'False',
            'pool_size': '10',
            'max_overflow': '20',
            'pool_timeout': '30',
            'pool_recycle': '1800'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['INVENTORY'] = {
            'fuzzy_match_threshold': '0.6',
            'min_confidence': '0.5',
            'suggestion_min_score': '0.3',
            'default_horizon_days': '21',
            'consumption_window_days': '30',
            'no_consumption_days_remaining': '999',
            'common_terms_locales': 'cs',
            'common_terms_path': ''
        }

        self._save_config()

    def _save_config(self):
        """Save configuration to file."""
        with open(self._config_path, 'w', encoding='utf-8') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def set(self, section, key, value):
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    def get_db_url(self):
        """Generate SQLAlchemy database URL."""
        engine = self.get('DATABASE', 'engine', 'postgresql')
        username = self.get('DATABASE', 'username', 'postgres')
        password = self.get('DATABASE', 'password', 'postgres')
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')
        database = self.get('DATABASE', 'database', 'supply_inventory')

        # URL encode the password to handle special characters
        password = urllib.parse.quote_plus(password)

        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def inventory_config(self):
        """Get inventory engine configuration."""
        locales = self.get('INVENTORY', 'common_terms_locales', 'cs') or ''
        return {
            'fuzzy_match_threshold': self.get_float('INVENTORY', 'fuzzy_match_threshold', 0.6),
            'min_confidence': self.get_float('INVENTORY', 'min_confidence', 0.5),
            'suggestion_min_score': self.get_float('INVENTORY', 'suggestion_min_score', 0.3),
            'default_horizon_days': self.get_int('INVENTORY', 'default_horizon_days', 21),
            'consumption_window_days': self.get_int('INVENTORY', 'consumption_window_days', 30),
            'no_consumption_days_remaining': self.get_int('INVENTORY', 'no_consumption_days_remaining', 999),
            'common_terms_locales': [loc.strip() for loc in locales.split(',') if loc.strip()],
            'common_terms_path': self.get('INVENTORY', 'common_terms_path', '') or None
        }

# Global config instance
config = Config()
