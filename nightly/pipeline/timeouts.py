from __future__ import annotations

# Target builds
CARGO_BUILD_TIMEOUT_SECONDS = 30 * 60.0
CARGO_TEST_TIMEOUT_SECONDS = 30 * 60.0
BUNDLE_TIMEOUT_SECONDS = 30 * 60.0
STRIP_TIMEOUT_SECONDS = 60.0
SYSTEM_PACKAGES_TIMEOUT_SECONDS = 15 * 60.0
RUSTUP_TIMEOUT_SECONDS = 5 * 60.0

# GH release API
GH_TIMEOUT_SECONDS = 60.0
GH_UPLOAD_TIMEOUT_SECONDS = 10 * 60.0
