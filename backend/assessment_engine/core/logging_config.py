from logging.config import dictConfig

from assessment_engine.core.config import settings

DEFAULT_LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once at application start-up."""
    dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': DEFAULT_LOG_FORMAT,
                },
            },
            'handlers': {
                'default': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'default',
                },
            },
            'root': {
                'handlers': ['default'],
                'level': (level or settings.LOG_LEVEL).upper(),
            },
            'loggers': {
                'sqlalchemy.engine': {'level': 'WARNING'},
            },
        }
    )
