# services -- clients for the Metior backend API
