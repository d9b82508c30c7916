"""Fix payload templates emitted by the remediation synthesizer.

Payloads are text only; nothing here is ever written into the audited tree.
"""

DATABASE_CONFIG = """<?php
/**
 * Database configuration
 * Single cached PDO connection with exceptions enabled
 */

class Database {
    private $host = 'localhost';
    private $db_name = 'CHANGE_ME';
    private $username = 'CHANGE_ME';
    private $password = 'CHANGE_ME';
    private $conn;

    public function getConnection() {
        if ($this->conn !== null) {
            return $this->conn;
        }

        try {
            $dsn = "mysql:host=" . $this->host . ";dbname=" . $this->db_name . ";charset=utf8mb4";
            $this->conn = new PDO(
                $dsn,
                $this->username,
                $this->password,
                array(
                    PDO::ATTR_ERRMODE => PDO::ERRMODE_EXCEPTION,
                    PDO::ATTR_DEFAULT_FETCH_MODE => PDO::FETCH_ASSOC,
                    PDO::ATTR_EMULATE_PREPARES => false
                )
            );
            return $this->conn;
        } catch (PDOException $e) {
            error_log("Database connection error: " . $e->getMessage());
            throw new Exception("Database connection failed");
        }
    }

    public function testConnection() {
        try {
            $stmt = $this->getConnection()->query("SELECT 1");
            return $stmt !== false;
        } catch (Exception $e) {
            return false;
        }
    }
}
"""

# Deny-all rules for a directory holding sensitive files
ACCESS_CONTROL_DENY = """# Block direct access to everything in this directory
<IfModule mod_authz_core.c>
    Require all denied
</IfModule>
<IfModule !mod_authz_core.c>
    Order allow,deny
    Deny from all
</IfModule>
"""

# Upload directories: serve files, never execute scripts
UPLOAD_GUARD = """# Uploaded content must never be executed
<FilesMatch "\\.(php|phtml|php[0-9]|phar)$">
    Require all denied
</FilesMatch>
php_flag engine off
Options -ExecCGI -Indexes
"""

SENSITIVE_FILE_RULES = """# Block sensitive files
<Files ~ "^\\.">
    Require all denied
</Files>
<Files ~ "\\.(sql|log)$">
    Require all denied
</Files>
<Files ~ "^composer\\.(json|lock)$">
    Require all denied
</Files>
"""

BACKEND_REWRITE = """# Security headers
Header always set X-Content-Type-Options nosniff
Header always set X-Frame-Options DENY
Header always set Referrer-Policy "strict-origin-when-cross-origin"

RewriteEngine On

# API routes
RewriteCond %{REQUEST_FILENAME} !-f
RewriteCond %{REQUEST_FILENAME} !-d
RewriteRule ^api/(.*)$ api/index.php [QSA,L]

# Admin routes
RewriteCond %{REQUEST_FILENAME} !-f
RewriteCond %{REQUEST_FILENAME} !-d
RewriteRule ^admin/(.*)$ admin/index.php [QSA,L]

# Never serve library or configuration code directly
RewriteRule ^classes/.*$ - [F,L]
RewriteRule ^config/.*$ - [F,L]
"""

ENTRY_FILE = """<?php
/**
 * Route entry point
 */

$method = $_SERVER['REQUEST_METHOD'];
$path = trim(parse_url($_SERVER['REQUEST_URI'], PHP_URL_PATH), '/');

http_response_code(404);
header('Content-Type: application/json');
echo json_encode(['error' => 'Not found', 'path' => $path]);
"""
