"""
Central configuration and tunable constants.

- The compliance baseline (factory, mandatory parameters, sizing thresholds) is
  a frozen structure; the rule engine receives it by reference.
- Severity levels and their numeric scores are centralized for easy tuning.
- Encoding and output naming defaults can be overridden by CLI args.
"""

from dataclasses import dataclass
from typing import Tuple

# Issue levels, in decreasing order of urgency
LEVEL_CRITICAL = "critical"
LEVEL_WARNING = "warning"
LEVEL_INFO = "info"
LEVELS = (LEVEL_CRITICAL, LEVEL_WARNING, LEVEL_INFO)

# Severity scale: 0 (info) to 10 (critical)
SEVERITY_SCORES = {
    LEVEL_CRITICAL: 9,
    LEVEL_WARNING: 5,
    LEVEL_INFO: 1,
}

# context.xml files are usually shipped in Latin-1
DEFAULT_ENCODING = "ISO-8859-1"
OUTPUT_SUFFIX = ".NEW"
DEFAULT_REPORT_DIR = "reports"

# Shown as the "original" value of an attribute that is not declared
NOT_DEFINED = "not defined"

FACTORY_PLUS = "com.indra.jdbc.pool.EncryptedDataSourceFactoryPlus"


@dataclass(frozen=True)
class MandatoryParam:
    """A pool attribute that must equal a fixed literal."""
    name: str
    value: str
    rationale: str


@dataclass(frozen=True)
class Baseline:
    """
    Compliance baseline for JDBC pool declarations.

    Fields:
    - factory: class name of the required encrypted factory
    - mandatory: ordered table of parameters and their required literals
    - critical_pool_size: pool sizes at or below this are critical
    - min_pool_size: pool sizes below this are a warning
    - recommended_pool_size: value suggested for undersized pools
    - initial_size_ratio: initialSize/minIdle as a fraction of the pool size
    """
    factory: str
    mandatory: Tuple[MandatoryParam, ...]
    critical_pool_size: int = 1
    min_pool_size: int = 10
    recommended_pool_size: int = 50
    initial_size_ratio: float = 0.1


DEFAULT_BASELINE = Baseline(
    factory=FACTORY_PLUS,
    mandatory=(
        MandatoryParam("factory", FACTORY_PLUS, "Upgrade to the encrypted jdbc-pool library"),
        MandatoryParam("removeAbandoned", "true", "Prevents connection leaks"),
        MandatoryParam("removeAbandonedTimeout", "3600", "Timeout for long-running processes (1h)"),
        MandatoryParam("validationInterval", "30000", "Validation interval (30s)"),
        MandatoryParam("testOnBorrow", "true", "Validate the connection before use"),
        MandatoryParam("testWhileIdle", "true", "Validate idle connections"),
        MandatoryParam("timeBetweenEvictionRunsMillis", "30000", "Pool cleanup cycle"),
        MandatoryParam("minEvictableIdleTimeMillis", "60000", "Minimum idle time before eviction"),
        MandatoryParam("logAbandoned", "true", "Log abandoned connections"),
    ),
)

# Display names for every audited attribute (reports only)
PARAM_DESCRIPTIONS = {
    "maxActive": "Maximum active connections",
    "maxTotal": "Maximum total connections",
    "maxIdle": "Maximum idle connections",
    "minIdle": "Minimum idle connections",
    "initialSize": "Initial connections",
}
PARAM_DESCRIPTIONS.update({p.name: p.rationale for p in DEFAULT_BASELINE.mandatory})
