"""
Interactive CLI for KARAK, the electronic patient folder.
Every action goes through the record service and its access checks.
"""

from getpass import getpass
from typing import List, Optional, Sequence

from karak.config import DB_FILE, configure_logging
from karak.database import Database
from karak.errors import KarakError
from karak.models import BloodType, PersonalData, Role, UserData, UserID
from karak.policy import RulePolicy
from karak.services import Service
from karak.validation import (
    parse_avs_number,
    parse_username,
    password_problems,
)


class MenuExit(Exception):
    """Raised to leave the current menu."""


# ── Prompt helpers ───────────────────────────────────────────────────

def ask(prompt: str) -> str:
    try:
        return input(prompt).strip()
    except (EOFError, KeyboardInterrupt):
        print()
        raise MenuExit()


def ask_password(prompt: str) -> str:
    try:
        return getpass(prompt)
    except (EOFError, KeyboardInterrupt):
        print()
        raise MenuExit()


def choose(prompt: str, options: Sequence) -> Optional[int]:
    """Print a numbered list and return the chosen index, or None when skipped."""
    print()
    for i, option in enumerate(options, 1):
        print(f"  {i}. {option}")
    answer = ask(f"{prompt} ")
    if not answer:
        return None
    if not answer.isdigit() or not 1 <= int(answer) <= len(options):
        print("[!] Invalid choice.")
        return None
    return int(answer) - 1


def ask_username(prompt: str) -> str:
    return parse_username(ask(prompt))


def ask_new_password(username: str) -> str:
    while True:
        password = ask_password("Choose a password: ")
        problems = password_problems(password, username)
        if not problems:
            if ask_password("Repeat the password: ") == password:
                return password
            print("[!] Passwords do not match.")
            continue
        for problem in problems:
            print(f"  - {problem}")


# ── Menus ────────────────────────────────────────────────────────────

def main_menu(service: Service) -> None:
    options = ["Create an account", "Log in", "Quit"]
    while True:
        try:
            choice = choose("What do you want to do?", options)
            if choice == 0:
                username = ask_username("Username to register: ")
                password = ask_new_password(username)
                service.register(username, password)
                print(f"[*] Account {username} created.")
            elif choice == 1:
                username = ask_username("Username: ")
                password = ask_password("Password: ")
                user_id = service.login(username, password)
                print(f"[*] Welcome, {username}.")
                user_menu(service, user_id)
                service.logout()
            elif choice == 2:
                return
        except MenuExit:
            return
        except KarakError as e:
            print(f"[ERROR] {e}")


def user_menu(service: Service, user_id: UserID) -> None:
    options = [
        "Create or update my medical folder",
        "Read my medical folder",
        "Give a doctor access to my folder",
        "Revoke a doctor's access to my folder",
        "Read a patient's folder",
        "Write a report",
        "Edit one of my reports",
        "Manage roles",
        "Delete all my medical data",
        "Log out",
    ]
    while True:
        try:
            choice = choose("What do you want to do?", options)
            if choice is None:
                continue
            if choice == 9:
                return
            handle_user_choice(service, user_id, choice)
        except MenuExit:
            return
        except KarakError as e:
            print(f"[ERROR] {e}")


def handle_user_choice(service: Service, user_id: UserID, choice: int) -> None:
    if choice == 0:
        avs_number = parse_avs_number(ask("AVS number: "))
        blood_types = list(BloodType)
        index = choose("Blood type:", [b.value for b in blood_types])
        if index is None:
            return
        service.update_data(user_id, PersonalData(avs_number, blood_types[index]))
        print("[*] Medical folder saved.")

    elif choice == 1:
        show_folder(service, user_id)

    elif choice in (2, 3):
        doctor_id = service.lookup_user(ask_username("Doctor's username: "))
        if doctor_id is None:
            print("[!] Unknown user.")
            return
        if choice == 2:
            service.add_doctor(user_id, doctor_id)
            print("[*] This doctor now has access to your folder.")
        else:
            service.remove_doctor(user_id, doctor_id)
            print("[*] This doctor no longer has access to your folder.")

    elif choice == 4:
        patients = list(service.list_patients())
        if not patients:
            print("[*] You have no patients.")
            return
        index = choose("Choose a patient:", patients)
        if index is not None:
            show_folder(service, patients[index].id)

    elif choice == 5:
        patient_id = service.lookup_user(ask_username("Patient's username: "))
        if patient_id is None:
            print("[!] Unknown patient.")
            return
        title = ask("Report title: ")
        content = read_multiline("Report content (end with an empty line):")
        service.add_report(user_id, patient_id, title, content)
        print("[*] Report saved.")

    elif choice == 6:
        patient_id = service.lookup_user(ask_username("Patient's username: "))
        if patient_id is None:
            print("[!] Unknown patient.")
            return
        own = [r for r in service.list_reports(patient_id) if r.author == user_id]
        if not own:
            print("[*] You wrote no report in this folder.")
            return
        index = choose("Choose a report:", own)
        if index is None:
            return
        content = read_multiline("New content (end with an empty line):")
        service.update_report(own[index].id, content)
        print("[*] Report updated.")

    elif choice == 7:
        target = service.lookup_user(ask_username("Username to manage: "))
        if target is None:
            print("[!] Unknown user.")
            return
        roles = list(Role)
        index = choose("New role:", [r.value for r in roles])
        if index is not None:
            service.update_role(target, roles[index])
            print("[*] Role updated.")

    elif choice == 8:
        answer = ask("REALLY DELETE ALL YOUR MEDICAL DATA? Type 'yes' to confirm: ")
        if answer.lower() == "yes":
            service.delete_data(user_id)
            print("[*] Your medical data has been deleted.")


def read_multiline(prompt: str) -> str:
    print(prompt)
    lines: List[str] = []
    while True:
        line = ask("")
        if not line:
            return "\n".join(lines)
        lines.append(line)


def show_folder(service: Service, patient_id: UserID) -> None:
    try:
        user: UserData = service.get_data(patient_id)
    except KarakError:
        print("[!] Access to this folder is restricted.")
    else:
        folder = user.medical_folder
        print(f"\nUser: {user.username}")
        print(f"Role: {user.role}")
        print(f"Medical folder: {'yes' if folder else 'no'}")
        if folder:
            print(f"AVS number: {folder.personal_data.avs_number}")
            print(f"Blood type: {folder.personal_data.blood_type}")

    reports = list(service.list_reports(patient_id))
    if not reports:
        print("[*] There are no reports in this folder.")
        return
    while True:
        index = choose("Choose a report (empty to go back):", reports)
        if index is None:
            return
        report = reports[index]
        print(f"\n[{report.id}]\nTitle: {report.title}\nAuthor: {report.author}\n\n{report.content}")
        print("=" * 15)


def main():
    print("=== KARAK: the super secure electronic patient folder ===\n")

    configure_logging()
    db = Database.open(DB_FILE)
    print(f"[init] Database: {DB_FILE} ({len(db.users)} users, {len(db.reports)} reports)")

    service = Service(db, RulePolicy())
    try:
        main_menu(service)
    finally:
        service.save()
        print("Goodbye.")


if __name__ == "__main__":
    main()
