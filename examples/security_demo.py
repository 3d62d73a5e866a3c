#!/usr/bin/env python3
"""
CRM Security Core Demo
======================

Walks through the client-side security layer in demo mode:
- Input sanitization and threat detection
- Login, rate limiting and session restore
- Security event reporting

Author: jetgause
Date: 2025-12-12
"""

import asyncio
import sys

from crm_security import (
    AuthenticationError,
    EnvironmentMode,
    SecurityConfig,
    Sanitizer,
    create_security_context,
)


class Colors:
    HEADER = '\033[95m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


SEVERITY_COLORS = {
    'low': Colors.OKCYAN,
    'medium': Colors.WARNING,
    'high': Colors.FAIL,
    'critical': Colors.FAIL,
}


async def run_demo():
    """Run security demo."""

    print(f"\n{Colors.HEADER}{Colors.BOLD}{'='*70}")
    print("  CRM Security Core Demo")
    print(f"{'='*70}{Colors.ENDC}\n")

    config = SecurityConfig.for_mode(EnvironmentMode.DEMO, login_delay_seconds=0.1, log_level="WARNING")
    context = create_security_context(config)
    monitor = context.monitor
    session = context.session

    # 1. Sanitization
    print(f"{Colors.BOLD}1. Input Sanitization{Colors.ENDC}\n")

    samples = [
        "<script>alert('xss')</script>Olá",
        "javascript:alert(1)",
        "Robert'); DROP TABLE clientes;--",
    ]
    for sample in samples:
        print(f"  {sample!r}")
        print(f"    -> {Colors.OKCYAN}{Sanitizer.sanitize(sample)!r}{Colors.ENDC}")

    # 2. Threat detection
    print(f"\n{Colors.BOLD}2. Threat Detection{Colors.ENDC}\n")

    for sample in samples:
        for event in monitor.monitor_input(sample, context="demo.search"):
            color = SEVERITY_COLORS[event.severity.value]
            print(f"  {color}[{event.severity.value.upper()}]{Colors.ENDC} {event.type.value}")

    # 3. Login
    print(f"\n{Colors.BOLD}3. Login{Colors.ENDC}\n")

    user = await session.login("admin@uniga.com", "admin123")
    print(f"  {Colors.OKGREEN}✓{Colors.ENDC} Logged in as {user.name} ({user.role.value})")
    print(f"    Permissions: {', '.join(sorted(session.permissions))}")
    session.logout()

    # 4. Rate limiting
    print(f"\n{Colors.BOLD}4. Rate Limiting{Colors.ENDC}\n")

    for attempt in range(1, config.rate_limit_attempts + 2):
        try:
            await session.login("vendedor@uniga.com", "wrong-password")
        except AuthenticationError as e:
            marker = Colors.FAIL if e.rate_limited else Colors.WARNING
            print(f"  Attempt {attempt}: {marker}{e.message}{Colors.ENDC}")

    # 5. Session restore
    print(f"\n{Colors.BOLD}5. Session Restore{Colors.ENDC}\n")

    await session.login("gerente@uniga.com", "gerente123")
    restored = create_security_context(
        config, identities=context.identities, backend=context.secure_store.backend
    ).session.restore()
    print(f"  Restored session for: {Colors.OKCYAN}{restored.email if restored else None}{Colors.ENDC}")

    # 6. Report
    print(f"\n{Colors.BOLD}6. Security Report{Colors.ENDC}\n")

    report = monitor.export_report()
    print(f"  Total Events: {Colors.OKCYAN}{report.metrics.total_events}{Colors.ENDC}")
    print(f"  Critical Events: {Colors.FAIL}{report.metrics.critical_events}{Colors.ENDC}")
    for key, count in report.events_by_type.items():
        print(f"    • {key}: {count}")

    print(f"\n{Colors.OKGREEN}{Colors.BOLD}Demo completed successfully!{Colors.ENDC}\n")


if __name__ == "__main__":
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        print(f"\n{Colors.WARNING}Demo interrupted by user{Colors.ENDC}\n")
    except Exception as e:
        print(f"\n{Colors.FAIL}Error: {e}{Colors.ENDC}\n")
        sys.exit(1)
