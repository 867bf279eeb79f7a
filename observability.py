from datetime import datetime

import config


def _render_event_message(event: str, fields: dict) -> str:
    if event == "twitter.request.signed":
        return f"Signed {fields.get('method')} {fields.get('url')}"

    if event == "twitter.request.sent":
        return (
            f"{fields.get('method')} {fields.get('url')} -> HTTP {fields.get('status')} "
            f"in {fields.get('elapsed_sec')}s"
        )

    if event == "twitter.request.failed":
        return f"{fields.get('method')} {fields.get('url')} failed: {fields.get('error')}"

    if event == "twitter.update.rejected":
        return f"Status update not accepted (HTTP {fields.get('status')})."

    if event == "twitter.media.rejected":
        return f"Media upload not accepted (HTTP {fields.get('status')})."

    details = ", ".join(f"{key}={value}" for key, value in fields.items())
    return f"{event}: {details}" if details else event


def log_event(event: str, **fields):
    if not config.LOG_EVENTS:
        return
    timestamp = datetime.now().strftime("%I:%M:%S %p")
    message = _render_event_message(event, fields)
    print(f"{timestamp}  {message}")
