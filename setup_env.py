#!/usr/bin/env python3
"""
CRM Security Core - Environment Setup Script
============================================

Generates a .env file for hardened mode with freshly generated signing and
encryption keys.

Usage:
    python3 setup_env.py

Or with auto-accept defaults:
    python3 setup_env.py --auto

Author: jetgause
Created: 2025-12-12
"""

import os
import sys
import secrets
from pathlib import Path

from crm_security.config import SecurityConfig
from crm_security.exceptions import ConfigurationError


def generate_secret_key(length=32):
    """Generate a cryptographically secure secret key."""
    return secrets.token_urlsafe(length)


def create_env_file(auto=False, env_path=".env"):
    """Create .env file with hardened-mode configuration."""

    print("=" * 70)
    print("CRM Security Core - Secure Environment Configuration")
    print("=" * 70)
    print()

    env_path = Path(env_path)
    backup_path = env_path.with_name(env_path.name + ".backup")
    if env_path.exists():
        print(".env file already exists!")
        if not auto:
            response = input("Do you want to overwrite it? (yes/no): ").lower()
            if response not in ['yes', 'y']:
                print("Setup cancelled.")
                return False
        print(f"Backing up existing .env to {backup_path.name}...")
        if backup_path.exists():
            os.remove(backup_path)
        os.rename(env_path, backup_path)

    print("\nGenerating secure configuration...\n")

    config = {
        'CRM_ENVIRONMENT': 'hardened',
        'CRM_SECRET_KEY': generate_secret_key(32),
        'CRM_ENCRYPTION_KEY': generate_secret_key(32),
        'CRM_STORAGE_PATH': './data/secure_store.json',
        'CRM_RATE_LIMIT_ATTEMPTS': '5',
        'CRM_RATE_LIMIT_WINDOW_MS': str(15 * 60 * 1000),
        'CRM_BCRYPT_ROUNDS': '12',
        'CRM_DIAGNOSTICS_HOST': '127.0.0.1',
        'CRM_DIAGNOSTICS_PORT': '8765',
        'CRM_LOG_LEVEL': 'INFO',
        'CRM_LOG_FILE': './logs/crm_security.log',
    }
    key = config['CRM_SECRET_KEY']
    print(f"Generated CRM_SECRET_KEY: {key[:6]}...{key[-6:]}")

    if not auto:
        print("\nOptional Configuration (press Enter to keep defaults):\n")

        storage = input(f"Storage path [{config['CRM_STORAGE_PATH']}]: ").strip()
        if storage:
            config['CRM_STORAGE_PATH'] = storage

        level = input(f"Log level [{config['CRM_LOG_LEVEL']}]: ").strip()
        if level:
            config['CRM_LOG_LEVEL'] = level.upper()

    print("\nWriting configuration to .env file...")

    env_content = f"""# CRM Security Core - Environment Configuration
# Generated: {Path(__file__).name}
# WARNING: Never commit this file to version control!

# ============================================================================
# CRITICAL SECURITY SETTINGS
# ============================================================================

CRM_ENVIRONMENT={config['CRM_ENVIRONMENT']}
CRM_SECRET_KEY={config['CRM_SECRET_KEY']}
CRM_ENCRYPTION_KEY={config['CRM_ENCRYPTION_KEY']}

# ============================================================================
# STORAGE & RATE LIMITING
# ============================================================================

CRM_STORAGE_PATH={config['CRM_STORAGE_PATH']}
CRM_RATE_LIMIT_ATTEMPTS={config['CRM_RATE_LIMIT_ATTEMPTS']}
CRM_RATE_LIMIT_WINDOW_MS={config['CRM_RATE_LIMIT_WINDOW_MS']}
CRM_BCRYPT_ROUNDS={config['CRM_BCRYPT_ROUNDS']}

# ============================================================================
# DIAGNOSTICS API
# ============================================================================

CRM_DIAGNOSTICS_HOST={config['CRM_DIAGNOSTICS_HOST']}
CRM_DIAGNOSTICS_PORT={config['CRM_DIAGNOSTICS_PORT']}

# ============================================================================
# LOGGING
# ============================================================================

CRM_LOG_LEVEL={config['CRM_LOG_LEVEL']}
CRM_LOG_FILE={config['CRM_LOG_FILE']}
"""

    with open(env_path, "w") as f:
        f.write(env_content)

    print(".env file created successfully!")

    print("\nVerifying configuration...")
    try:
        loaded = SecurityConfig.from_env(str(env_path))
        print("Configuration validated!")
        print(f"   - Mode: {loaded.mode.value}")
        print(f"   - CRM_SECRET_KEY: Set ({len(loaded.secret_key)} characters)")
        print(f"   - Diagnostics: {loaded.diagnostics_host}:{loaded.diagnostics_port}")
        return True
    except ConfigurationError as e:
        print(f"Configuration validation failed: {e}")
        return False


def main():
    """Main entry point."""
    auto = '--auto' in sys.argv

    if not auto:
        print("\nThis script will create a secure .env configuration file.")
        print("Press Ctrl+C at any time to cancel.\n")

    try:
        success = create_env_file(auto=auto)

        if success:
            print("\n" + "=" * 70)
            print("CONFIGURATION COMPLETE!")
            print("=" * 70)
            print("\nNext steps:")
            print("1. Review the .env file (optional)")
            print("2. Start the diagnostics API: crm-security-diagnostics")
            print("\nRemember: NEVER commit the .env file to git!")
            return 0
        else:
            print("\nConfiguration failed. Please check the errors above.")
            return 1

    except KeyboardInterrupt:
        print("\n\nSetup cancelled by user.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
