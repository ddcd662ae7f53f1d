"""
LessonScribe Configuration Module
Centralized configuration for the extraction engine.
"""

import os
from pathlib import Path

import yaml

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "LessonScribe"
APPDATA_DIR = Path(
    os.environ.get('LESSONSCRIBE_HOME')
    or Path(os.environ.get('APPDATA', os.path.expanduser('~/.config'))) / APP_NAME
)
LOGS_DIR = APPDATA_DIR / "logs"
REPORTS_DIR = APPDATA_DIR / "reports"

# Ensure directories exist
for directory in [APPDATA_DIR, LOGS_DIR, REPORTS_DIR]:
    directory.mkdir(parents=True, exist_ok=True)

# Inference Backend Configuration
OLLAMA_API_BASE = os.environ.get('OLLAMA_API_BASE', "http://localhost:11434")
OLLAMA_TIMEOUT_SECONDS = 600  # Full-chapter calls over many images are slow
OLLAMA_CONTEXT_WINDOW = 16384  # Tokens - page images plus a JSON answer need room

# Extraction Call Limits
# Mirrors the limits used when the strategies were first compared:
# one call over the whole chapter gets the biggest answer budget.
FULL_MAX_TOKENS = 8000
BATCH_MAX_TOKENS = 4000
OVERVIEW_MAX_TOKENS = 2000
EXTRACTION_TEMPERATURE = 0.1

# Progressive Context Limits
# Keep the "context so far" block small; it is repeated in every later prompt
CONTEXT_SAMPLE_CAP = 3      # Headwords remembered per vocabulary category
CONTEXT_GRAMMAR_CAP = 10    # Grammar concept names remembered per run

# Deduplication Key Fields (first truthy field wins)
PRIMARY_TERM_FIELDS = ("fijian", "concept", "id")
SECONDARY_TERM_FIELDS = ("english", "explanation")

# Cost Estimation
# Rates are USD per million tokens; usage is split 80% input / 20% output
COST_INPUT_SHARE = 0.8
COST_OUTPUT_SHARE = 0.2
DEFAULT_MODEL_PRICING = {'input': 3.0, 'output': 15.0}

# Comparison Reports
REPORT_KEY_PREFIX = "comparison-reports"
REPORT_STRATEGY_COLUMN_WIDTH = 23

# Parallel Strategy Execution
# Each worker keeps one long generation request open on the inference server
STRATEGY_MAX_WORKERS = int(os.environ.get('LESSONSCRIBE_STRATEGY_WORKERS', '2'))

# Logging Configuration
LOG_FILE = LOGS_DIR / "processing.log"
DEBUG_FLOW_FILE = LOGS_DIR / "debug_flow.txt"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# --- Model Pricing Configuration ---
CONFIG_DIR = Path(__file__).parent.parent / "config"
MODEL_CONFIG_FILE = CONFIG_DIR / "models.yaml"
STRATEGY_CONFIG_FILE = CONFIG_DIR / "strategies.yaml"
MODEL_PRICING = {}


def load_model_pricing(path: Path | None = None) -> dict:
    """
    Loads per-model token rates from config/models.yaml.

    Args:
        path: Alternate YAML file (defaults to MODEL_CONFIG_FILE)

    Returns:
        Dict mapping model id to {'input': rate, 'output': rate}
    """
    global MODEL_PRICING
    config_path = path or MODEL_CONFIG_FILE
    try:
        with open(config_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        MODEL_PRICING = {
            str(name): {
                'input': float(rates.get('input', DEFAULT_MODEL_PRICING['input'])),
                'output': float(rates.get('output', DEFAULT_MODEL_PRICING['output'])),
            }
            for name, rates in (data.get('models') or {}).items()
            if isinstance(rates, dict)
        }
        if DEBUG_MODE and MODEL_PRICING:
            from lessonscribe.logging_config import debug_log
            debug_log(f"[Config] Loaded pricing for {len(MODEL_PRICING)} models from {config_path}")
    except FileNotFoundError:
        if DEBUG_MODE:
            from lessonscribe.logging_config import debug_log
            debug_log(f"[Config] WARNING: Model pricing file not found at {config_path}. Using default rates.")
        MODEL_PRICING = {}
    except (yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
        from lessonscribe.logging_config import debug_log
        debug_log(f"[Config] ERROR: Failed to load or parse model pricing file: {e}")
        MODEL_PRICING = {}
    return MODEL_PRICING


def get_model_pricing(model_name: str) -> dict:
    """
    Returns the token rates for a specific model.

    Args:
        model_name: The model identifier (e.g., 'claude-3-opus-20240229').

    Returns:
        A dictionary with 'input' and 'output' rates per million tokens.

    Raises:
        UnknownModelPricing: If neither the exact name nor its base name is configured.
    """
    if not MODEL_PRICING:
        load_model_pricing()

    # 1. Try to find the exact model name
    if model_name in MODEL_PRICING:
        return MODEL_PRICING[model_name]

    # 2. Fallback for tagged names (e.g., 'llava:34b' priced as 'llava')
    base_name = model_name.split(':')[0]
    if base_name in MODEL_PRICING:
        return MODEL_PRICING[base_name]

    from lessonscribe.extraction.errors import UnknownModelPricing
    raise UnknownModelPricing(model_name)


def load_strategy_presets(total_pages: int, path: Path | None = None) -> list:
    """
    Build the configured extraction strategies for a document.

    A preset's batch_size of "all" (or a missing batch_size) expands to the
    document's page count.

    Args:
        total_pages: Number of pages in the document being compared
        path: Alternate YAML file (defaults to STRATEGY_CONFIG_FILE)

    Returns:
        List of Strategy objects in configuration order
    """
    from lessonscribe.extraction.models import ContextMode, Strategy
    from lessonscribe.logging_config import debug_log

    config_path = path or STRATEGY_CONFIG_FILE
    try:
        with open(config_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        presets = data.get('strategies') or []
    except FileNotFoundError:
        debug_log(f"[Config] Strategy presets not found at {config_path}. Using built-in presets.")
        presets = DEFAULT_STRATEGY_PRESETS
    except yaml.YAMLError as e:
        debug_log(f"[Config] ERROR: Failed to parse strategy presets: {e}. Using built-in presets.")
        presets = DEFAULT_STRATEGY_PRESETS

    strategies = []
    for preset in presets:
        batch_size = preset.get('batch_size', 'all')
        if batch_size in (None, 'all'):
            batch_size = total_pages
        strategies.append(
            Strategy(
                name=str(preset['name']),
                model=str(preset['model']),
                batch_size=int(batch_size),
                context_mode=ContextMode.parse(preset.get('context_mode', 'full')),
            )
        )

    debug_log(f"[Config] {len(strategies)} strategy presets for {total_pages} pages")
    return strategies


# Built-in presets used when config/strategies.yaml is missing
DEFAULT_STRATEGY_PRESETS = [
    {'name': 'Vision-90B-Full', 'model': 'llama3.2-vision:90b', 'batch_size': 'all', 'context_mode': 'full'},
    {'name': 'Vision-11B-Full', 'model': 'llama3.2-vision:11b', 'batch_size': 'all', 'context_mode': 'full'},
    {'name': 'Vision-90B-Batch-Context', 'model': 'llama3.2-vision:90b', 'batch_size': 3, 'context_mode': 'progressive'},
    {'name': 'Vision-11B-Batch-Context', 'model': 'llama3.2-vision:11b', 'batch_size': 3, 'context_mode': 'progressive'},
    {'name': 'Vision-11B-Hybrid', 'model': 'llama3.2-vision:11b', 'batch_size': 3, 'context_mode': 'hybrid-overview'},
]
