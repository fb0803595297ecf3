from .vgconfig import (
    Config as Config,
)
from .vgconfig import (
    Credentials as Credentials,
)
from .vgconfig import (
    PortalConfig as PortalConfig,
)
from .vgconfig import (
    PortalSelectors as PortalSelectors,
)
from .vgconfig import (
    RetryConfig as RetryConfig,
)
from .vgconfig import (
    coerce_nested as coerce_nested,
)
from .vgconfig import (
    coerce_value as coerce_value,
)
from .vgconfig import (
    load_config as load_config,
)
from .vgconfig import (
    load_credentials as load_credentials,
)
from .vgcron import (
    CronError as CronError,
)
from .vgcron import (
    CronSchedule as CronSchedule,
)
from .vgerrors import (
    ConfigError as ConfigError,
)
from .vgerrors import (
    ElementNotFoundError as ElementNotFoundError,
)
from .vgerrors import (
    ExtractionError as ExtractionError,
)
from .vgerrors import (
    MaxRetriesError as MaxRetriesError,
)
from .vgerrors import (
    ParseError as ParseError,
)
from .vgerrors import (
    PortalError as PortalError,
)
from .vgerrors import (
    ScraperError as ScraperError,
)
from .vgerrors import (
    StorageError as StorageError,
)
from .vgjobs import (
    Scheduler as Scheduler,
)
from .vgjobs import (
    build_scheduler as build_scheduler,
)
from .vgjobs import (
    run_job as run_job,
)
from .vgjobs import (
    run_with_retry as run_with_retry,
)
from .vgmodels import (
    MONEY_FIELDS as MONEY_FIELDS,
)
from .vgmodels import (
    HoldingRecord as HoldingRecord,
)
from .vgmodels import (
    JobFailure as JobFailure,
)
from .vgmodels import (
    JobOutcome as JobOutcome,
)
from .vgmodels import (
    JobSuccess as JobSuccess,
)
from .vgmodels import (
    StoredHolding as StoredHolding,
)
from .vgmodels import (
    records_to_frame as records_to_frame,
)
from .vgscraper import (
    HoldingsScraper as HoldingsScraper,
)
from .vgsession import (
    PlaywrightPortal as PlaywrightPortal,
)
from .vgsession import (
    Portal as Portal,
)
from .vgsession import (
    browser_session as browser_session,
)
from .vgsession import (
    pump_events as pump_events,
)
from .vgsession import (
    wait_for_element as wait_for_element,
)
from .vgstore import (
    ExactDecimal as ExactDecimal,
)
from .vgstore import (
    HoldingStore as HoldingStore,
)
from .vgvalues import (
    clean_value as clean_value,
)
from .vgvalues import (
    parse_value as parse_value,
)
