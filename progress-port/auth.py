"""
Faculty login against a static credential list.
"""

import hmac

FACULTY_CREDENTIALS = [
    {'username': 'faculty1', 'password': 'password1', 'name': 'Dr. Aishwarya Sharma'},
    {'username': 'faculty2', 'password': 'password2', 'name': 'Prof. Rajat Verma'},
    {'username': 'faculty3', 'password': 'password3', 'name': 'Dr. Neeraj Singh'},
    {'username': 'faculty4', 'password': 'password4', 'name': 'Prof. Sunita Kumari'},
]


def authenticate(username, password, credentials=None):
    """Return {'username', 'name'} for a valid login, else None."""
    for faculty in credentials or FACULTY_CREDENTIALS:
        if faculty['username'] != username:
            continue
        if hmac.compare_digest(str(faculty['password']), str(password or '')):
            return {'username': faculty['username'], 'name': faculty['name']}
        return None
    return None
