"""
Offline console demo: runs the booking flows without any backend keys.

Uses the real session store, booking repository, booking form and
location sampler over the in-memory backend. No network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario locate
    python console_demo.py --scenario cancel
"""

import argparse
import asyncio
from datetime import date, timedelta

from urban_auto.app import UrbanAutoApp, build_in_memory_app
from urban_auto.backend.memory import InMemoryBackend, ScriptedLocationDevice, StaticGeocoder
from urban_auto.catalog import get_all_services
from urban_auto.config import settings
from urban_auto.schemas.booking_schema import BookingStatus
from urban_auto.schemas.location_schema import LocationSample
from urban_auto.server.notifications import BroadcastHandler

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_SAMPLES = [
    LocationSample(latitude=12.9716, longitude=77.5946, accuracy=40),
    LocationSample(latitude=12.9717, longitude=77.5947, accuracy=15),
    LocationSample(latitude=12.9718, longitude=77.5945, accuracy=90),
    LocationSample(latitude=12.9716, longitude=77.5944, accuracy=15),
    LocationSample(latitude=12.9715, longitude=77.5946, accuracy=60),
]


class ConsoleSession:
    """Drives one demo customer through the app in the terminal."""

    def __init__(self) -> None:
        self.backend = InMemoryBackend()
        self.backend.push.register_device("demo-device-1")
        self.app: UrbanAutoApp = build_in_memory_app(
            self.backend,
            device=ScriptedLocationDevice(DEMO_SAMPLES),
            geocoder=StaticGeocoder(),
        )

    def say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.app_name}]{RESET} {GREEN}{text}{RESET}")

    def warn(self, text: str) -> None:
        print(f"{YELLOW}  !! {text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show_bookings(self) -> None:
        bookings = self.app.bookings.bookings
        if not bookings:
            self.system_log("No bookings")
            return
        for booking in bookings:
            self.system_log(
                f"{booking.id[:8]}  {booking.service_name:<22} {booking.vehicle_type:<10} "
                f"{booking.preferred_date_time:<17} {booking.status.value}"
            )

    async def _signup(self) -> bool:
        self.say("Creating an account for Jane...")
        result = await self.app.session.signup("Jane", "jane@x.com", "9990001111", "pw123")
        if not result["success"]:
            print(f"{RED}{result['message']}{RESET}")
            return False
        identity = self.app.session.identity
        self.system_log(f"Signed in as {identity.name} <{identity.email}> ({identity.id[:8]})")
        self.system_log(f"Session state: {self.app.session.state.value}")
        return True

    async def _book(self, service_id: str, address: str) -> None:
        form = self.app.new_booking_form(service_id)
        form.set_field("vehicle_type", "Sedan")
        form.set_field("vehicle_number", "KA 01 AB 1234")
        form.set_field("address", address)
        form.set_field("date", (date.today() + timedelta(days=2)).isoformat())
        form.set_field("time", "10:30")
        result = await form.submit()
        if result["success"]:
            self.say(f"{result['message']} ({form.service_name or service_id})")
        else:
            print(f"{RED}{result['message']}: {result.get('errors')}{RESET}")

    async def scenario_booking(self) -> None:
        if not await self._signup():
            return
        self.say("Available services:")
        for service in get_all_services()[:4]:
            self.system_log(f"{service['id']:<20} {service['name']}")

        self.say("Submitting an incomplete form first...")
        form = self.app.new_booking_form("car-wash")
        form.set_field("date", (date.today() - timedelta(days=1)).isoformat())
        invalid = await form.submit()
        for name, message in invalid["errors"].items():
            self.warn(f"{name}: {message}")

        await self._book("car-wash", "42 MG Road, Bengaluru")
        await self._book("oil-change", "42 MG Road, Bengaluru")
        self.show_bookings()
        pending = self.app.bookings.count_by_status(BookingStatus.PENDING)
        self.system_log(f"Pending: {pending}")

        status, body = await BroadcastHandler(self.backend.push).handle(
            {"title": "Booking received", "body": "We will confirm your slot shortly."}
        )
        self.system_log(f"Broadcast -> HTTP {status}: {body}")

    async def scenario_cancel(self) -> None:
        await self.scenario_booking()
        newest = self.app.bookings.bookings[0]
        self.say(f"Cancelling {newest.service_name}...")
        result = await self.app.bookings.cancel_booking(newest.id)
        self.say(result["message"])
        self.show_bookings()
        await self.app.session.logout()
        self.system_log(f"After logout: state={self.app.session.state.value}, "
                        f"cached bookings={len(self.app.bookings.bookings)}")

    async def scenario_locate(self) -> None:
        if not await self._signup():
            return
        self.say("Finding your location (5 fixes)...")
        result = await self.app.sampler.locate()
        if not result["success"]:
            print(f"{RED}{result['message']}{RESET}")
            return
        located = result["located"]
        self.system_log(f"Best fix accuracy: {located.sample.accuracy:.0f} m")
        if located.advisory:
            self.warn(located.advisory)
        self.say(f"Address: {located.address.display_name}")
        form = self.app.new_booking_form("periodic-service")
        form.prefill_address(located)
        await self._book("periodic-service", form.values["address"])
        self.show_bookings()

    SCENARIOS = {
        "booking": scenario_booking,
        "cancel": scenario_cancel,
        "locate": scenario_locate,
    }

    async def run_scenario(self, scenario: str) -> None:
        runner = self.SCENARIOS.get(scenario)
        if runner is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.app_name.upper()} - Scenario: {scenario}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

        await self.app.start()
        self.system_log(f"Session state: {self.app.session.state.value}")
        try:
            await runner(self)
        finally:
            await self.app.shutdown()

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  State trace: "
              f"{' -> '.join(self.app.session.state_machine.get_state_trace())}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Urban Auto offline console demo.")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default="booking",
        help="Scripted flow to run (default: booking).",
    )
    args = parser.parse_args()
    asyncio.run(ConsoleSession().run_scenario(args.scenario))


if __name__ == "__main__":
    main()
