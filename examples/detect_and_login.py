"""
Example: Detect and Login

This example opens a login page, detects the form and enters credentials.
Set LOGIN_URL, LOGIN_USER and LOGIN_PASSWORD (and optionally LOGIN_DOMAIN)
before running it.
"""

import asyncio
import os

from login_autofill import CredentialEntry, Credentials, LoginDetector
from login_autofill.browsers.playwright_browser import PlaywrightBrowser
from login_autofill.config import load_config


async def main():
    """Run the detect-and-login example."""

    # Load configuration (from env vars, config files, or defaults)
    settings = load_config(sites={"profiles_path": "examples/sites.yaml"})

    browser = PlaywrightBrowser()
    await browser.launch(headless=settings.browser.headless)
    try:
        page = await browser.new_page()
        await page.goto(os.environ["LOGIN_URL"])

        form = await LoginDetector(settings).detect(page)
        if form is None:
            print("No login form found")
            return
        print(f"Detected by {form.method.value} (confidence {form.confidence})")

        credentials = Credentials(
            username=os.environ["LOGIN_USER"],
            password=os.environ["LOGIN_PASSWORD"],
            domain=os.environ.get("LOGIN_DOMAIN"),
        )
        result = await CredentialEntry(page, settings.entry).enter(form, credentials)

        for step in result.steps:
            print(f"  {step.name}: {'ok' if step.success else step.error}")
        print(f"Success: {result.success} ({result.mode.value} mode)")
    finally:
        await browser.close()


if __name__ == "__main__":
    asyncio.run(main())
