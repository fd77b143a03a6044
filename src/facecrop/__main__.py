"""Allow running the extractor with ``python -m facecrop``."""

from facecrop.main import main

raise SystemExit(main())
