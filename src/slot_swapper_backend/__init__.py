'''
SlotSwapper Backend: calendar slots that users can mark as swappable and
exchange with each other through swap requests.
'''
