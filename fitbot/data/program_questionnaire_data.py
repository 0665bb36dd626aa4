# Question definitions for the "generate program" questionnaire.
# Order in this list is the order the user is asked in.

question_definitions_program = [
    {
        'id': 'age',
        'title': 'What is your age?',
        'type': 'number',
        'placeholder': 'Enter your age',
        'range': {'min': 13, 'max': 100, 'integer': True},
        'error': 'Please enter a valid age between 13 and 100',
    },
    {
        'id': 'weight',
        'title': 'What is your current weight?',
        'subtitle': 'This helps us calculate your BMI and recommend appropriate exercises',
        'type': 'number',
        'placeholder': 'Enter your weight in kg',
        'range': {'min': 30, 'max': 300},
        'error': 'Please enter a valid weight between 30-300 kg',
    },
    {
        'id': 'height',
        'title': 'What is your height?',
        'subtitle': 'This helps us calculate your BMI accurately',
        'type': 'number',
        'placeholder': 'Enter your height in cm',
        'range': {'min': 100, 'max': 250},
        'error': 'Please enter a valid height between 100-250 cm',
    },
    {
        'id': 'injuries',
        'title': 'Do you have any existing injuries or physical limitations?',
        'subtitle': "We'll customize your program to work around any limitations",
        'type': 'free_text',
        'placeholder': 'Describe any injuries, joint issues, or physical limitations '
                       '(or write "None" if you have no injuries)',
        'min_length': 2,
        'error': 'Please provide information about injuries or write "None"',
    },
    {
        'id': 'fitness_goal',
        'title': 'What is your primary fitness goal?',
        'type': 'single_choice',
        'options': [
            ('muscle_gain', 'Gaining Muscle'),
            ('weight_loss', 'Losing Weight'),
            ('general_fitness', 'General Fitness & Health'),
            ('strength', 'Building Strength'),
            ('endurance', 'Improving Endurance'),
        ],
        'error': 'Please select your primary fitness goal',
    },
    {
        'id': 'workout_days',
        'title': 'How many days per week can you exercise?',
        'type': 'single_choice',
        'options': [(str(days), f'{days} days per week') for days in range(2, 8)],
        'error': 'Please select how many days you can workout',
    },
    {
        'id': 'fitness_level',
        'title': 'What is your current fitness level?',
        'type': 'single_choice',
        'options': [
            ('beginner', 'Beginner - New to exercise or returning after a long break'),
            ('intermediate', 'Intermediate - Regular exercise for 6+ months'),
            ('advanced', 'Advanced - Consistent training for 2+ years'),
        ],
        'error': 'Please select your fitness level',
    },
    {
        'id': 'dietary_restrictions',
        'title': 'Do you have any dietary restrictions or preferences?',
        'subtitle': 'This helps us create a nutrition plan that works for you',
        'type': 'free_text',
        'placeholder': 'List any allergies, dietary restrictions, or food preferences '
                       '(vegetarian, vegan, gluten-free, etc.) or write "None"',
        'min_length': 2,
        'error': 'Please provide dietary information or write "None"',
    },
]
