"""
Multilogin API client.
Signs in, starts and stops the configured browser profile.

Supports both cloud-based and local Docker deployments via USE_LOCAL_DOCKER.
"""

import hashlib
import time
from typing import Optional

import requests

from .errors import ProviderError

CLOUD_API = "https://api.multilogin.com"
CLOUD_LAUNCHER = "https://launcher.mlx.yt:45001/api/v1"
DOCKER_API = "http://localhost:35000/api/v2"
DOCKER_LAUNCHER = "https://localhost:45001/api/v1"

REQUEST_HEADERS = {
    'Accept': 'application/json',
    'Content-Type': 'application/json',
    'Accept-Language': 'en',
}

# Launcher status messages meaning the profile must be stopped first
LOCKED_MESSAGES = ("can't lock profile", "browser process is running")


class Multilogin:
    """Thin client for the Multilogin API and launcher."""

    def __init__(
        self,
        folder_id: str,
        profile_id: str,
        use_local_docker: bool = False,
        timeout: float = 30.0,
        http: Optional[requests.Session] = None
    ):
        self.folder_id = folder_id
        self.profile_id = profile_id
        self.use_local_docker = use_local_docker
        self.timeout = timeout
        self.token: Optional[str] = None
        self.http = http or requests.Session()
        # Local Docker launcher uses a self-signed certificate
        self.verify_tls = not use_local_docker

        if use_local_docker:
            print("🐳 Using local Docker Multilogin setup")
            print(f"   API: {self.api_base}")
            print(f"   Launcher: {self.launcher_base}")
        else:
            print("☁️  Using cloud-based Multilogin setup")

    @property
    def api_base(self) -> str:
        return DOCKER_API if self.use_local_docker else CLOUD_API

    @property
    def launcher_base(self) -> str:
        return DOCKER_LAUNCHER if self.use_local_docker else CLOUD_LAUNCHER

    def _auth_headers(self) -> dict:
        return {**REQUEST_HEADERS, 'Authorization': f"Bearer {self.token}"}

    def sign_in(self, email: str, password: str) -> str:
        """
        Sign in and store the bearer token.

        Args:
            email: Account email
            password: Plain-text password (sent as its MD5 hex digest)

        Returns:
            Bearer token
        """
        payload = {
            'email': email,
            'password': hashlib.md5(password.encode('utf-8')).hexdigest(),
        }
        try:
            response = self.http.post(
                f"{self.api_base}/user/signin",
                json=payload,
                headers=REQUEST_HEADERS,
                timeout=self.timeout,
                verify=self.verify_tls,
            )
            response.raise_for_status()
            self.token = response.json()['data']['token']
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"SignIn failed: {e}") from e
        return self.token

    def _request_start(self, headless: bool) -> str:
        params = {'automation_type': 'selenium'}
        if headless:
            params['headless_mode'] = 'true'
        response = self.http.get(
            f"{self.launcher_base}/profile/f/{self.folder_id}/p/{self.profile_id}/start",
            params=params,
            headers=self._auth_headers(),
            timeout=self.timeout,
            verify=self.verify_tls,
        )
        return str(response.json()['status']['message'])

    def start_profile(self, headless: bool = False) -> int:
        """
        Start the browser profile for Selenium automation.

        A locked or already-running profile is stopped and started once more.

        Args:
            headless: Run the profile without a visible window

        Returns:
            Local port of the profile's WebDriver endpoint
        """
        if not self.token:
            raise ProviderError("Please use sign_in() before start_profile()")

        try:
            message = self._request_start(headless)
            if message in LOCKED_MESSAGES:
                print("⚠️  Profile is locked or already running. Attempting to stop it...")
                self.stop_profile()
                print("✓ Profile stopped. Waiting 3 seconds before retry...")
                time.sleep(3)
                message = self._request_start(headless)
                if message in LOCKED_MESSAGES:
                    raise ProviderError(
                        "Profile is still locked after stop attempt. Please:\n"
                        "  1. Manually stop the profile in Multilogin app\n"
                        "  2. Wait a few seconds and try again"
                    )
            return int(message)
        except requests.ConnectionError as e:
            raise ProviderError(
                "Cannot connect to Multilogin launcher. Please ensure:\n"
                "  1. Multilogin application is installed\n"
                "  2. Multilogin application is running\n"
                f"  3. The launcher is accessible at: {self.launcher_base}"
            ) from e
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"StartProfile failed: {e}") from e

    def stop_profile(self):
        """Stop the browser profile. An unreachable launcher only warns."""
        try:
            self.http.get(
                f"{self.launcher_base}/profile/stop/p/{self.profile_id}",
                headers=self._auth_headers(),
                timeout=self.timeout,
                verify=self.verify_tls,
            )
        except requests.ConnectionError:
            print("⚠️  Could not stop profile - Multilogin launcher not accessible")
        except requests.RequestException as e:
            raise ProviderError(f"StopProfile failed: {e}") from e

    def check_launcher(self) -> bool:
        """Any HTTP response from the launcher means it is reachable."""
        try:
            self.http.get(f"{self.launcher_base}/", timeout=self.timeout, verify=self.verify_tls)
            return True
        except requests.RequestException:
            return False
