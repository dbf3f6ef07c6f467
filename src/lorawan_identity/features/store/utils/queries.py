"""SQL for the PostgreSQL identity store.

Entities keep their kind-specific fields in a JSONB document next to the
columns queries filter on. Rights are stored as text arrays of right
names, always implied.
"""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS {schema}.entities (
    kind TEXT NOT NULL,
    id TEXT NOT NULL,
    data JSONB NOT NULL,
    gateway_eui TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    deleted_at TIMESTAMPTZ,
    PRIMARY KEY (kind, id)
);
CREATE UNIQUE INDEX IF NOT EXISTS entities_gateway_eui_key
    ON {schema}.entities (gateway_eui) WHERE gateway_eui IS NOT NULL;

CREATE TABLE IF NOT EXISTS {schema}.memberships (
    account_kind TEXT NOT NULL,
    account_id TEXT NOT NULL,
    entity_kind TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    rights TEXT[] NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (account_kind, account_id, entity_kind, entity_id)
);
CREATE INDEX IF NOT EXISTS memberships_entity_idx
    ON {schema}.memberships (entity_kind, entity_id);

CREATE TABLE IF NOT EXISTS {schema}.api_keys (
    id TEXT PRIMARY KEY,
    entity_kind TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    key_hash TEXT NOT NULL,
    rights TEXT[] NOT NULL,
    expires_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS api_keys_entity_idx ON {schema}.api_keys (entity_kind, entity_id);

CREATE TABLE IF NOT EXISTS {schema}.user_sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    session_secret_hash TEXT,
    expires_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS {schema}.oauth_authorizations (
    user_id TEXT NOT NULL,
    client_id TEXT NOT NULL,
    rights TEXT[] NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (user_id, client_id)
);

CREATE TABLE IF NOT EXISTS {schema}.oauth_access_tokens (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    client_id TEXT NOT NULL,
    rights TEXT[] NOT NULL,
    access_token_hash TEXT,
    refresh_token_hash TEXT,
    user_session_id TEXT,
    expires_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS {schema}.email_validations (
    id TEXT PRIMARY KEY,
    entity_kind TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    address TEXT NOT NULL,
    token_hash TEXT NOT NULL,
    used BOOLEAN NOT NULL DEFAULT FALSE,
    expires_at TIMESTAMPTZ NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS email_validations_entity_idx
    ON {schema}.email_validations (entity_kind, entity_id, address);

CREATE TABLE IF NOT EXISTS {schema}.invitations (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    token_hash TEXT NOT NULL,
    expires_at TIMESTAMPTZ,
    accepted_by TEXT,
    accepted_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

LOCK_ENTITY = "SELECT 1 FROM {schema}.entities WHERE kind = $1 AND id = $2 FOR UPDATE"

# Entities

INSERT_ENTITY = """
    INSERT INTO {schema}.entities (kind, id, data, gateway_eui, created_at, updated_at)
    VALUES ($1, $2, $3::jsonb, $4, $5, $5)
    RETURNING data, created_at, updated_at, deleted_at
"""

SELECT_ENTITY = """
    SELECT data, created_at, updated_at, deleted_at FROM {schema}.entities
    WHERE kind = $1 AND id = $2 AND ($3 OR deleted_at IS NULL)
"""

UPDATE_ENTITY = """
    UPDATE {schema}.entities SET data = $3::jsonb, gateway_eui = $4, updated_at = $5
    WHERE kind = $1 AND id = $2
    RETURNING data, created_at, updated_at, deleted_at
"""

SOFT_DELETE_ENTITY = """
    UPDATE {schema}.entities SET deleted_at = $3
    WHERE kind = $1 AND id = $2 AND deleted_at IS NULL
"""

RESTORE_ENTITY = """
    UPDATE {schema}.entities SET deleted_at = NULL, updated_at = $3
    WHERE kind = $1 AND id = $2
"""

PURGE_ENTITY = "DELETE FROM {schema}.entities WHERE kind = $1 AND id = $2"

# Memberships

SELECT_MEMBER = """
    SELECT rights FROM {schema}.memberships
    WHERE account_kind = $1 AND account_id = $2 AND entity_kind = $3 AND entity_id = $4
"""

SELECT_MEMBERS = """
    SELECT account_kind, account_id, rights FROM {schema}.memberships
    WHERE entity_kind = $1 AND entity_id = $2
    ORDER BY account_kind, account_id
    LIMIT $3 OFFSET $4
"""

COUNT_MEMBERS = """
    SELECT COUNT(*) FROM {schema}.memberships WHERE entity_kind = $1 AND entity_id = $2
"""

SELECT_DIRECT_MEMBERSHIPS = """
    SELECT entity_id, rights FROM {schema}.memberships
    WHERE account_kind = $1 AND account_id = $2 AND entity_kind = $3
      AND ($4::text[] IS NULL OR entity_id = ANY($4::text[]))
    ORDER BY entity_id
"""

SELECT_INDIRECT_MEMBERSHIPS = """
    SELECT m.entity_id, m.rights, o.entity_id AS organization_id, o.rights AS organization_rights
    FROM {schema}.memberships o
    JOIN {schema}.memberships m
      ON m.account_kind = 'organization' AND m.account_id = o.entity_id
    WHERE o.account_kind = 'user' AND o.account_id = $1 AND o.entity_kind = 'organization'
      AND m.entity_kind = $2
      AND ($3::text[] IS NULL OR m.entity_id = ANY($3::text[]))
    ORDER BY m.entity_id
"""

UPSERT_MEMBER = """
    INSERT INTO {schema}.memberships (account_kind, account_id, entity_kind, entity_id, rights)
    VALUES ($1, $2, $3, $4, $5)
    ON CONFLICT (account_kind, account_id, entity_kind, entity_id)
    DO UPDATE SET rights = EXCLUDED.rights, updated_at = NOW()
"""

DELETE_MEMBER = """
    DELETE FROM {schema}.memberships
    WHERE account_kind = $1 AND account_id = $2 AND entity_kind = $3 AND entity_id = $4
"""

DELETE_ENTITY_MEMBERS = "DELETE FROM {schema}.memberships WHERE entity_kind = $1 AND entity_id = $2"

DELETE_ACCOUNT_MEMBERS = "DELETE FROM {schema}.memberships WHERE account_kind = $1 AND account_id = $2"

# API keys

INSERT_API_KEY = """
    INSERT INTO {schema}.api_keys (id, entity_kind, entity_id, name, key_hash, rights, expires_at, created_at, updated_at)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $8)
    RETURNING *
"""

SELECT_API_KEY = "SELECT * FROM {schema}.api_keys WHERE id = $1"

SELECT_ENTITY_API_KEYS = """
    SELECT * FROM {schema}.api_keys WHERE entity_kind = $1 AND entity_id = $2
    ORDER BY created_at, id
    LIMIT $3 OFFSET $4
"""

COUNT_ENTITY_API_KEYS = "SELECT COUNT(*) FROM {schema}.api_keys WHERE entity_kind = $1 AND entity_id = $2"

UPDATE_API_KEY = """
    UPDATE {schema}.api_keys SET name = $2, rights = $3, expires_at = $4, updated_at = NOW()
    WHERE id = $1
    RETURNING *
"""

DELETE_API_KEY = "DELETE FROM {schema}.api_keys WHERE id = $1"

DELETE_ENTITY_API_KEYS = "DELETE FROM {schema}.api_keys WHERE entity_kind = $1 AND entity_id = $2"

# Sessions

INSERT_SESSION = """
    INSERT INTO {schema}.user_sessions (id, user_id, session_secret_hash, expires_at, created_at)
    VALUES ($1, $2, $3, $4, $5)
    RETURNING *
"""

SELECT_SESSION = "SELECT * FROM {schema}.user_sessions WHERE id = $1"

DELETE_SESSION = "DELETE FROM {schema}.user_sessions WHERE id = $1"

DELETE_USER_SESSIONS = "DELETE FROM {schema}.user_sessions WHERE user_id = $1"

# OAuth

SELECT_AUTHORIZATION = "SELECT * FROM {schema}.oauth_authorizations WHERE user_id = $1 AND client_id = $2"

SELECT_USER_AUTHORIZATIONS = """
    SELECT * FROM {schema}.oauth_authorizations WHERE user_id = $1
    ORDER BY client_id
    LIMIT $2 OFFSET $3
"""

COUNT_USER_AUTHORIZATIONS = "SELECT COUNT(*) FROM {schema}.oauth_authorizations WHERE user_id = $1"

UPSERT_AUTHORIZATION = """
    INSERT INTO {schema}.oauth_authorizations (user_id, client_id, rights)
    VALUES ($1, $2, $3)
    ON CONFLICT (user_id, client_id) DO UPDATE SET rights = EXCLUDED.rights, updated_at = NOW()
    RETURNING *
"""

DELETE_AUTHORIZATION = "DELETE FROM {schema}.oauth_authorizations WHERE user_id = $1 AND client_id = $2"

DELETE_AUTHORIZATION_TOKENS = "DELETE FROM {schema}.oauth_access_tokens WHERE user_id = $1 AND client_id = $2"

INSERT_ACCESS_TOKEN = """
    INSERT INTO {schema}.oauth_access_tokens (
        id, user_id, client_id, rights, access_token_hash, refresh_token_hash,
        user_session_id, expires_at, created_at
    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
    RETURNING *
"""

SELECT_ACCESS_TOKEN = "SELECT * FROM {schema}.oauth_access_tokens WHERE id = $1"

SELECT_ACCESS_TOKENS = """
    SELECT * FROM {schema}.oauth_access_tokens WHERE user_id = $1 AND client_id = $2
    ORDER BY created_at, id
    LIMIT $3 OFFSET $4
"""

COUNT_ACCESS_TOKENS = "SELECT COUNT(*) FROM {schema}.oauth_access_tokens WHERE user_id = $1 AND client_id = $2"

DELETE_ACCESS_TOKEN = "DELETE FROM {schema}.oauth_access_tokens WHERE id = $1"

# Cleanup on purge

DELETE_USER_VALIDATIONS = "DELETE FROM {schema}.email_validations WHERE entity_kind = $1 AND entity_id = $2"

DELETE_USER_AUTHORIZATIONS = "DELETE FROM {schema}.oauth_authorizations WHERE user_id = $1"

DELETE_USER_ACCESS_TOKENS = "DELETE FROM {schema}.oauth_access_tokens WHERE user_id = $1"

DELETE_CLIENT_AUTHORIZATIONS = "DELETE FROM {schema}.oauth_authorizations WHERE client_id = $1"

DELETE_CLIENT_ACCESS_TOKENS = "DELETE FROM {schema}.oauth_access_tokens WHERE client_id = $1"

# Email validations

INSERT_EMAIL_VALIDATION = """
    INSERT INTO {schema}.email_validations (
        id, entity_kind, entity_id, address, token_hash, expires_at, created_at, updated_at
    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
    RETURNING *
"""

SELECT_EMAIL_VALIDATION = "SELECT * FROM {schema}.email_validations WHERE id = $1"

SELECT_ACTIVE_EMAIL_VALIDATION = """
    SELECT * FROM {schema}.email_validations
    WHERE entity_kind = $1 AND entity_id = $2 AND address = $3
      AND NOT used AND expires_at > $4
    ORDER BY created_at DESC
    LIMIT 1
"""

REFRESH_EMAIL_VALIDATION = """
    UPDATE {schema}.email_validations SET token_hash = $2, expires_at = $3, updated_at = $4
    WHERE id = $1
    RETURNING *
"""

EXPIRE_EMAIL_VALIDATION = """
    UPDATE {schema}.email_validations SET used = TRUE, expires_at = $2, updated_at = $2
    WHERE id = $1
"""

# Invitations

SELECT_PENDING_INVITATION = """
    SELECT id FROM {schema}.invitations
    WHERE email = $1 AND accepted_by IS NULL AND (expires_at IS NULL OR expires_at > $2)
"""

INSERT_INVITATION = """
    INSERT INTO {schema}.invitations (id, email, token_hash, expires_at, created_at, updated_at)
    VALUES ($1, $2, $3, $4, $5, $5)
    RETURNING *
"""

SELECT_INVITATION = "SELECT * FROM {schema}.invitations WHERE id = $1"

SELECT_INVITATIONS = """
    SELECT * FROM {schema}.invitations ORDER BY created_at, id LIMIT $1 OFFSET $2
"""

COUNT_INVITATIONS = "SELECT COUNT(*) FROM {schema}.invitations"

ACCEPT_INVITATION = """
    UPDATE {schema}.invitations SET accepted_by = $2, accepted_at = $3, updated_at = $3
    WHERE id = $1
"""

DELETE_INVITATION = "DELETE FROM {schema}.invitations WHERE id = $1"
