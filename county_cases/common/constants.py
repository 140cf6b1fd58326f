"""Application constants."""

USER_AGENT = "county-cases-ingest/1.0 (+https://github.com/nytimes/covid-19-data)"
REFERENCE_TTL_SECONDS = 24 * 60 * 60
SUMMARY_SEPARATOR = " | "
ERROR_FIELD_SEPARATOR = " - "
LIVENESS_BODY = "ok"
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
ENV_OVERRIDES = {
    "SUPABASE_HOSTNAME": ("store", "url"),
    "SUPABASE_ANON_KEY": ("store", "api_key"),
    "NOTIFY_WEBHOOK_URL": ("notify", "webhook_url"),
    "FEED_URL": ("feed", "url"),
    "PORT": ("server", "port"),
    "INGEST_CRON": ("schedule", "cron"),
    "LOG_LEVEL": ("logging", "level"),
}
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "step",
    "source",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
