"""Shared fixtures: a deployed application tree on disk and a config pointing at it."""

from pathlib import Path

import pytest

from deploy_auditor.config import AuditConfig


API_INDEX = """<?php
require_once __DIR__ . '/../config/config.php';
require_once __DIR__ . '/../classes/Auth.php';

$method = $_SERVER['REQUEST_METHOD'];
if ($method === 'GET') {
    echo json_encode(['ok' => true]);
}
"""

PLAIN_PAGE = """<?php
function render($title) {
    echo "<h1>" . $title . "</h1>";
}
"""

UPLOAD_GUARD = """<Files *.php>
    Deny from all
</Files>
php_flag engine off
"""

BACKEND_REWRITE = """RewriteEngine On
RewriteRule ^api/(.*)$ api/index.php [QSA,L]
RewriteRule ^admin/(.*)$ admin/index.php [QSA,L]
"""


def write(root: Path, relative: str, content: str = "") -> Path:
    """Create `root/relative` with parent directories."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def site(tmp_path):
    """A healthy deployment matching the default expectation tables."""
    root = tmp_path / "public_html"
    write(root, ".htaccess", "RewriteEngine On\n")
    write(root, "index.php", PLAIN_PAGE)
    write(root, "backend/.htaccess", BACKEND_REWRITE)
    write(root, "backend/api/index.php", API_INDEX)
    write(root, "backend/admin/index.php", PLAIN_PAGE)
    write(root, "backend/admin/login.php", PLAIN_PAGE)
    write(root, "backend/get_projects.php", PLAIN_PAGE)
    write(root, "backend/config/config.php", "<?php\ndefine('DB_NAME', 'site');\n")
    write(root, "backend/config/database.php", "<?php\nclass Database {}\n")
    write(root, "backend/config/.htaccess", "Deny from all\n")
    write(root, "backend/classes/Auth.php", "<?php\nclass Auth {}\n")
    write(root, "backend/classes/.htaccess", "Deny from all\n")
    write(root, "backend/composer.json", "{}\n")
    write(root, "backend/composer.lock", "{}\n")
    write(root, "backend/uploads/.htaccess", UPLOAD_GUARD)
    (root / "backend/exports").mkdir(parents=True)
    (root / "backend/admin/logs").mkdir(parents=True)

    for relative in ("backend/uploads", "backend/exports", "backend/admin/logs", "backend/config", "backend/classes"):
        (root / relative).chmod(0o755)
    return root


@pytest.fixture
def config(site, tmp_path):
    """Default configuration aimed at the `site` tree, writing into tmp_path/out."""
    return AuditConfig(root=str(site), output_dir=str(tmp_path / "out"))
