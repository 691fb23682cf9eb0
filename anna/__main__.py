from anna.cli import main

main()
