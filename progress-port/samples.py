"""
Sample data loaded into each portal at startup.
"""

import random

DOMAINS = ['Web Development', 'Mobile App', 'Machine Learning', 'IoT', 'Cloud Computing', 'Blockchain']
FACULTY_MENTORS = ['Dr. Sharma', 'Prof. Verma', 'Dr. Singh', 'Prof. Kumari', 'Dr. Mehta']
INDUSTRY_MENTORS = ['Mr. Patel', 'Ms. Gupta', 'Mr. Reddy', 'Ms. Shah', 'Mr. Kumar']
YEARS = ['1', '2', '3', '4']
SEMESTERS = ['1', '2', '3', '4', '5', '6', '7', '8']
PROGRAMS = ['BSc', 'BTech CSE', 'BTech AI/ML', 'BCA', 'BCA AI/DS', 'MCA']
COORDINATORS = ['Dr. Aishwarya Sharma', 'Prof. Rajat Verma', 'Dr. Neeraj Singh', 'Prof. Sunita Kumari']
SESSIONS = ['2023-2024', '2024-2025']
ORGANIZATIONS = ['Infosys', 'TCS', 'Wipro', 'HCL Technologies', 'Tech Mahindra', 'Zoho']
ATTENDANCE_MONTHS = ['July', 'August']
STUDENTS_PER_GROUP = 3


def generate_sample_projects(count=20, seed=7):
    """Projects in groups of three students sharing title, mentors and documents."""
    rng = random.Random(seed)
    projects = []
    for index in range(count):
        g = index // STUDENTS_PER_GROUP
        group_no = f'G{g + 1:02d}'
        domain = DOMAINS[g % len(DOMAINS)]
        projects.append({
            'id': f'proj-{index + 1}',
            'groupNo': group_no,
            'rollNo': f'R{10000 + index + 1}',
            'name': f'Student {index + 1}',
            'email': f'student{index + 1}@example.com',
            'phoneNo': f'98765{10000 + index + 1}',
            'title': f'Project {group_no}: {domain} Solution',
            'domain': domain,
            'facultyMentor': FACULTY_MENTORS[g % len(FACULTY_MENTORS)],
            'industryMentor': INDUSTRY_MENTORS[g % len(INDUSTRY_MENTORS)],
            'form': f'{group_no}_form.pdf' if g % 3 == 0 else '',
            'presentation': f'{group_no}_presentation.pdf' if g % 4 == 0 else '',
            'report': f'{group_no}_report.pdf' if g % 5 == 0 else '',
            'year': YEARS[g % len(YEARS)],
            'semester': SEMESTERS[g % len(SEMESTERS)],
            'program': PROGRAMS[g % len(PROGRAMS)],
            'facultyCoordinator': COORDINATORS[g % len(COORDINATORS)],
            'session': rng.choice(SESSIONS),
        })
    return projects


def generate_sample_internships(count=40, seed=11):
    rng = random.Random(seed)
    internships = []
    for index in range(count):
        start_month = rng.randint(1, 6)
        internship = {
            'id': f'intern-{index + 1}',
            'rollNo': f'R{20000 + index + 1}',
            'name': f'Student {index + 1}',
            'program': PROGRAMS[index % len(PROGRAMS)],
            'organization': ORGANIZATIONS[index % len(ORGANIZATIONS)],
            'dates': f'2024-{start_month:02d}-01 to 2024-{start_month + 2:02d}-30',
            'noc': f'R{20000 + index + 1}_noc.pdf' if index % 2 == 0 else '',
            'offerLetter': f'R{20000 + index + 1}_offerLetter.pdf' if index % 3 == 0 else '',
            'pop': f'R{20000 + index + 1}_pop.pdf' if index % 4 == 0 else '',
            'year': YEARS[index % len(YEARS)],
            'semester': SEMESTERS[index % len(SEMESTERS)],
            'session': rng.choice(SESSIONS),
            'extra': {},
        }
        for month in ATTENDANCE_MONTHS:
            internship['extra'][f'Attendance {month}'] = rng.choice(['Present', 'Absent', ''])
        internships.append(internship)
    return internships
