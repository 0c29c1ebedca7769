"""Form rules: CSRF tokens, insecure actions and password handling."""
from urllib.parse import urljoin, urlsplit

from qastell.adapters.snapshot import FormInfo, Snapshot
from qastell.rules.base import Category, ElementRef, Finding, Rule, Severity

CSRF_TOKEN_PATTERNS = (
    "csrf", "xsrf", "_token", "authenticity_token", "csrfmiddlewaretoken", "__requestverificationtoken",
)


def _form_ref(form: FormInfo) -> ElementRef:
    return ElementRef(form.selector, f'<form action="{form.action}" method="{form.method}">')


def has_csrf_token(form: FormInfo) -> bool:
    return any(
        any(p in name.lower() for p in CSRF_TOKEN_PATTERNS) for name in form.input_names()
    )


def check_csrf_token(snapshot: Snapshot) -> list[Finding]:
    return [
        Finding(f"POST form without CSRF token (action: '{form.action or snapshot.url}')", _form_ref(form))
        for form in snapshot.forms
        if form.method == "POST" and not has_csrf_token(form)
    ]


def check_insecure_action(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for form in snapshot.forms:
        target = urljoin(snapshot.url, form.action) if form.action else snapshot.url
        if urlsplit(target).scheme == "http" and (snapshot.is_https or form.has_password_field):
            findings.append(Finding(f"Form submits over unencrypted HTTP to {target}", _form_ref(form)))
    return findings


def check_password_autocomplete(snapshot: Snapshot) -> list[Finding]:
    findings = []
    for form in snapshot.forms:
        form_off = (form.autocomplete or "").lower() == "off"
        for field in form.inputs:
            if field.get("type") != "password":
                continue
            value = field.get("autocomplete", "").lower()
            if value in ("off", "new-password", "current-password") or (form_off and not value):
                continue
            findings.append(Finding(
                f"Password field '{field.get('name') or '(unnamed)'}' does not declare an autocomplete policy",
                _form_ref(form),
            ))
    return findings


def check_password_get(snapshot: Snapshot) -> list[Finding]:
    return [
        Finding("Form with a password field submits via GET, exposing it in the URL", _form_ref(form))
        for form in snapshot.forms
        if form.method == "GET" and form.has_password_field
    ]


RULES: list[Rule] = [
    Rule(
        id="form-missing-csrf-token",
        name="Form Without CSRF Token",
        category=Category.FORMS,
        severity=Severity.MEDIUM,
        description="State-changing forms should carry an anti-CSRF token",
        evaluate=check_csrf_token,
        recommendation="Add a per-session CSRF token to every POST form",
    ),
    Rule(
        id="form-insecure-action",
        name="Form Submits Over HTTP",
        category=Category.FORMS,
        severity=Severity.HIGH,
        description="Form data sent over HTTP can be intercepted",
        evaluate=check_insecure_action,
        recommendation="Use HTTPS form actions",
    ),
    Rule(
        id="password-autocomplete-enabled",
        name="Password Autocomplete Not Declared",
        category=Category.FORMS,
        severity=Severity.INFO,
        description="Password inputs should declare autocomplete=current-password or new-password",
        evaluate=check_password_autocomplete,
        recommendation="Set autocomplete='current-password' or 'new-password' on password inputs",
    ),
    Rule(
        id="password-form-get-method",
        name="Password Submitted via GET",
        category=Category.FORMS,
        severity=Severity.HIGH,
        description="Credentials in query strings end up in logs and history",
        evaluate=check_password_get,
        recommendation="Submit credential forms with method='POST'",
    ),
]
