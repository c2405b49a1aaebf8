# Calendar layout module
