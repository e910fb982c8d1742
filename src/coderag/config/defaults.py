"""Default configuration values for coderag."""

from pathlib import Path

# Directory holding the embedded Kuzu database
DEFAULT_DB_PATH = Path(".coderag")

# Name of the Kuzu database inside DEFAULT_DB_PATH
DB_DIRNAME = "code_graph"

# Bulk ingestion
DEFAULT_ENTITY_BATCH_SIZE = 100
DEFAULT_RELATIONSHIP_BATCH_SIZE = 100

# Query limits
DEFAULT_SEARCH_LIMIT = 100  # search_nodes and search_nodes_across_projects
DEFAULT_LIST_LIMIT = 1000  # get_all_nodes
DEFAULT_PROJECT_LIST_LIMIT = 100  # list_projects

# Traversal bounds
DEFAULT_MAX_TRAVERSAL_DEPTH = 32  # inheritance walks
DEFAULT_MAX_CYCLE_LENGTH = 8  # circular dependency detection

# Cohesion strategy used for LCOM
DEFAULT_LCOM_STRATEGY = "pairwise"

# Threshold file looked up next to the database when none is configured
DEFAULT_THRESHOLDS_FILENAME = "thresholds.yaml"
