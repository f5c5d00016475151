from hr.models import Employee

STAFF_NUMBER_PREFIX = "EMP-"


def next_staff_number():
    existing = Employee.objects.filter(staff_number__startswith=STAFF_NUMBER_PREFIX).values_list("staff_number", flat=True)
    serials = [int(number[len(STAFF_NUMBER_PREFIX):]) for number in existing if number[len(STAFF_NUMBER_PREFIX):].isdigit()]
    return f"{STAFF_NUMBER_PREFIX}{max(serials + [0]) + 1:05d}"
