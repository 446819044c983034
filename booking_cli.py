#!/usr/bin/env python3
"""
Interactive terminal host for the new-appointment workflow.

Drives BookingWorkflow against the booking API (start mock_api.py first):

    python mock_api.py
    python booking_cli.py
"""
import asyncio
import sys

from booking_workflow import config
from booking_workflow.logging_config import setup_structured_logging
from booking_workflow.notifications import Severity
from booking_workflow.services import HttpBookingBackend
from booking_workflow.workflow import BookingWorkflow


class Colors:
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


SEVERITY_COLORS = {
    Severity.INFO: Colors.YELLOW,
    Severity.SUCCESS: Colors.GREEN,
    Severity.ERROR: Colors.RED,
}


class TerminalNotifier:
    """Prints notifications as they arrive."""

    def notify(self, title: str, message: str, severity: Severity) -> None:
        color = SEVERITY_COLORS.get(severity, Colors.RESET)
        print(f"{color}[{title}] {message}{Colors.RESET}")


def print_banner():
    print("\n" + "=" * 70)
    print("NEW APPOINTMENT - terminal form")
    print("=" * 70)
    print("\nCommands:")
    print("  /patient <text>      - Search patients (min 3 chars)")
    print("  /doctor <text>       - Search doctors (min 2 chars)")
    print("  /pick patient|doctor <n> - Choose suggestion number n")
    print("  /service <n>         - Choose service number n")
    print("  /reason <n>          - Choose reason number n")
    print("  /when <YYYY-MM-DDTHH:MM> - Set appointment date and time")
    print("  /submit              - Book the appointment")
    print("  /reset               - Clear the form")
    print("  /state               - Show the form")
    print("  /quit                - Exit")
    print("\n" + "=" * 70 + "\n")


def print_options(title, options):
    print(f"{Colors.BOLD}{title}{Colors.RESET}")
    if not options:
        print("   (none)")
    for index, option in enumerate(options, start=1):
        print(f"   {index}. {option.label}")


def print_state(workflow: BookingWorkflow):
    state = workflow.state
    print("\n" + "-" * 70)
    print(f"Patient : {state.patient.selected_entity_label or '-'}")
    print(f"Doctor  : {state.doctor.selected_entity_label or '-'}")
    print(f"When    : {state.local_date_time or '-'} (earliest {workflow.minimum_date_time})")
    if state.time_validation_error:
        print(f"          {Colors.RED}{state.time_validation_error}{Colors.RESET}")
    service = next((o.label for o in state.service_options if o.value == state.service_id), "-")
    reason = next((o.label for o in state.reason_options if o.value == state.reason_value), "-")
    print(f"Service : {service}")
    print(f"Reason  : {reason}")
    print("-" * 70 + "\n")


def pick(options, raw_index):
    try:
        index = int(raw_index) - 1
    except ValueError:
        return None
    if 0 <= index < len(options):
        return options[index]
    return None


async def search(workflow: BookingWorkflow, field: str, text: str):
    controller = workflow.patient_search if field == "patient" else workflow.doctor_search
    controller.on_input_changed(text)
    controller.on_input_settled()
    if controller.lookup_pending:
        await asyncio.sleep(controller.delay_ms / 1000 + 0.05)
    await controller.settle()
    print_options(f"{field.title()} suggestions:", controller.field.candidate_list)


async def handle(workflow: BookingWorkflow, line: str) -> bool:
    command, _, argument = line.partition(" ")
    command = command.lower()
    argument = argument.strip()

    if command in ("/quit", "/exit"):
        return False
    elif command == "/help":
        print_banner()
    elif command == "/state":
        print_state(workflow)
    elif command in ("/patient", "/doctor"):
        await search(workflow, command[1:], argument)
    elif command == "/pick":
        field, _, raw_index = argument.partition(" ")
        controller = workflow.patient_search if field == "patient" else workflow.doctor_search
        option = pick(controller.field.candidate_list, raw_index)
        if option is None or not controller.on_candidate_selected(option.id):
            print("No such suggestion.")
        else:
            print(f"Selected {option.label}")
    elif command == "/service":
        option = pick(workflow.state.service_options, argument)
        if option is None:
            print_options("Services:", workflow.state.service_options)
        else:
            workflow.on_service_changed(option.value)
    elif command == "/reason":
        option = pick(workflow.state.reason_options, argument)
        if option is None:
            print_options("Reasons:", workflow.state.reason_options)
        else:
            workflow.on_reason_changed(option.value)
    elif command == "/when":
        workflow.on_date_time_changed(argument)
        if workflow.state.time_validation_error:
            print(f"{Colors.RED}{workflow.state.time_validation_error}{Colors.RESET}")
    elif command == "/submit":
        outcome = await workflow.submit()
        if outcome.appointment:
            print(f"Reference: {outcome.appointment.get('id')}")
    elif command == "/reset":
        workflow.reset()
        print("Form cleared.")
    else:
        print(f"Unknown command: {line}")
        print("Type /help to see available commands\n")
    return True


async def main():
    setup_structured_logging(log_level="WARNING")
    print_banner()

    backend = HttpBookingBackend(base_url=config.BOOKING_API_BASE_URL)
    workflow = BookingWorkflow.from_backend(backend, notifier=TerminalNotifier())
    await workflow.start()
    print_options("Services:", workflow.state.service_options)
    print_options("Reasons:", workflow.state.reason_options)
    print()

    running = True
    while running:
        try:
            line = (await asyncio.to_thread(input, "> ")).strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!\n")
            break
        if not line:
            continue
        running = await handle(workflow, line)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
