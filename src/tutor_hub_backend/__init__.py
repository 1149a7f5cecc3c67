'''
TutorHub Backend: the API for the TutorHub tutoring marketplace.
'''
